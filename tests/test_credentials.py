import re

import pytest

from quizportal.models import QuizCredential
from quizportal.services.credentials import (
    RegistrationConflict,
    RegistrationError,
    generate_credentials,
    register_participant,
)
from tests.conftest import make_quiz


class TestGenerateCredentials:
    def test_uses_admission_number(self):
        username, password = generate_credentials(
            {"name": "Ravi Kumar", "email": " Ravi.K@College.edu ", "admission_number": "21CS042", "phone_number": "9876543210"}
        )
        assert username == "ravi.k@college.edu"
        assert password == "ravi21CS042"

    def test_falls_back_to_phone_digits(self):
        _, password = generate_credentials({"name": "Meena", "email": "m@x.edu", "phone_number": "9876543210"})
        assert password == "meena3210"

    def test_falls_back_to_random_digits(self):
        _, password = generate_credentials({"name": "Arun S", "email": "a@x.edu"})
        assert re.fullmatch(r"arun\d{4}", password)
        assert 1000 <= int(password[4:]) <= 9999

    def test_numeric_admission_number(self):
        _, password = generate_credentials({"name": "Ravi", "email": "r@x.edu", "admission_number": 2024001})
        assert password == "ravi2024001"

    def test_numeric_phone_number(self):
        _, password = generate_credentials({"name": "Meena", "email": "m@x.edu", "phone_number": 9876543210})
        assert password == "meena3210"

    @pytest.mark.parametrize("participant", [{"name": "No Email"}, {"email": "noname@x.edu"}, {}])
    def test_requires_name_and_email(self, participant):
        with pytest.raises(RegistrationError):
            generate_credentials(participant)


class TestRegisterParticipant:
    def test_individual_registration_hashes_password(self, quiz):
        credential, password = register_participant(
            quiz, {"participant": {"name": "Alice Doe", "email": "Alice@College.edu", "admission_number": "7"}}
        )
        assert password == "alice7"
        assert credential.username == "alice@college.edu"
        assert credential.password_hash != password
        assert credential.check_password(password)
        assert credential.failed_attempts == 0
        assert credential.locked is False
        assert credential.is_team is False

    def test_team_registration_uses_leader(self, quiz):
        credential, password = register_participant(
            quiz,
            {
                "is_team": True,
                "team_name": "Bit Flippers",
                "team_leader": {"name": "Lead Person", "email": "lead@x.edu", "phone_number": "5551234"},
                "team_members": [{"name": "Member One", "email": "m1@x.edu", "unexpected": "dropped"}],
            },
        )
        assert credential.username == "lead@x.edu"
        assert password == "lead1234"
        assert credential.team_name == "Bit Flippers"
        assert credential.team_members[0]["name"] == "Member One"
        assert "unexpected" not in credential.team_members[0]

    def test_team_requires_name(self, quiz):
        with pytest.raises(RegistrationError):
            register_participant(quiz, {"is_team": True, "team_leader": {"name": "A", "email": "a@x.edu"}})

    def test_reregistration_keeps_password(self, quiz):
        first, password = register_participant(quiz, {"participant": {"name": "Alice", "email": "a@x.edu", "admission_number": "1"}})
        second, new_password = register_participant(
            quiz, {"participant": {"name": "Alice", "email": "a@x.edu", "admission_number": "1", "college": "GEC"}}
        )
        assert new_password is None
        assert second.id == first.id
        assert second.college == "GEC"
        assert second.check_password(password)
        assert QuizCredential.query.count() == 1

    def test_same_email_on_another_quiz_conflicts(self, quiz):
        register_participant(quiz, {"participant": {"name": "Alice", "email": "a@x.edu"}})
        other = make_quiz(title="Other Quiz")
        with pytest.raises(RegistrationConflict):
            register_participant(other, {"participant": {"name": "Alice", "email": "a@x.edu"}})

    def test_deactivated_registration_conflicts(self, quiz):
        credential, _ = register_participant(quiz, {"participant": {"name": "Alice", "email": "a@x.edu"}})
        credential.is_active = False
        with pytest.raises(RegistrationConflict):
            register_participant(quiz, {"participant": {"name": "Alice", "email": "a@x.edu"}})

    def test_numeric_details_are_stored_as_text(self, quiz):
        credential, _ = register_participant(
            quiz, {"participant": {"name": "Ravi", "email": "r@x.edu", "phone_number": 9876543210, "year": 3}}
        )
        assert credential.phone_number == "9876543210"
        assert credential.year == "3"

    def test_participant_must_be_an_object(self, quiz):
        with pytest.raises(RegistrationError):
            register_participant(quiz, {"participant": "Alice"})

    def test_team_members_must_be_objects(self, quiz):
        with pytest.raises(RegistrationError):
            register_participant(
                quiz,
                {
                    "is_team": True,
                    "team_name": "T",
                    "team_leader": {"name": "Lead", "email": "lead@x.edu"},
                    "team_members": ["someone"],
                },
            )
