"""Tests for BehavioralProfile parsing and serialisation."""

from voice_inbox.profile.types import BehavioralProfile, Contact, dedupe_contacts


class TestFromDict:
    def test_camel_case_keys(self) -> None:
        profile = BehavioralProfile.from_dict(
            {
                "displayName": "Ana Pereira",
                "primaryEmail": "ana@acme.io",
                "frequentContacts": ["bob@acme.io", "", "carol@x.com"],
                "commonEmailIntents": "scheduling",
                "averageSentenceLength": "12.5",
            }
        )
        assert profile.display_name == "Ana Pereira"
        assert profile.primary_email == "ana@acme.io"
        assert profile.frequent_contacts == ("bob@acme.io", "carol@x.com")
        assert profile.common_email_intents == ("scheduling",)
        assert profile.average_sentence_length == 12.5

    def test_snake_case_keys(self) -> None:
        profile = BehavioralProfile.from_dict({"display_name": "Ana", "hobbies": ["climbing"]})
        assert profile.display_name == "Ana"
        assert profile.hobbies == ("climbing",)

    def test_unknown_and_null_keys_ignored(self) -> None:
        profile = BehavioralProfile.from_dict({"favouriteColour": "red", "tone": None})
        assert profile == BehavioralProfile()

    def test_bad_sentence_length_dropped(self) -> None:
        profile = BehavioralProfile.from_dict({"averageSentenceLength": "long"})
        assert profile.average_sentence_length == 0.0

    def test_contacts_are_parsed_and_lowercased(self) -> None:
        profile = BehavioralProfile.from_dict(
            {
                "contacts": [
                    {"name": "John Smith", "email": "js@x.com"},
                    {"name": "incomplete"},
                    "not-a-contact",
                ]
            }
        )
        assert profile.contacts == (Contact(name="john smith", email="js@x.com"),)


class TestToDict:
    def test_round_trips_through_wire_keys(self, sample_profile: BehavioralProfile) -> None:
        data = sample_profile.to_dict()
        assert data["displayName"] == "Ana Pereira"
        assert data["contacts"] == [{"name": "john smith", "email": "js@x.com"}]
        assert BehavioralProfile.from_dict(data) == sample_profile


class TestDedupeContacts:
    def test_first_occurrence_wins(self) -> None:
        contacts = dedupe_contacts(
            [
                Contact("John Smith", "js@x.com"),
                Contact("john smith", "other@x.com"),
                Contact("Johnny", "JS@x.com"),
                Contact("Marie", "marie@x.com"),
            ]
        )
        assert contacts == (
            Contact("john smith", "js@x.com"),
            Contact("marie", "marie@x.com"),
        )

    def test_blank_entries_dropped(self) -> None:
        assert dedupe_contacts([Contact(" ", "a@x.com"), Contact("a", "")]) == ()
