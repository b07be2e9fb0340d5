import pytest

from splitsmart.core.exceptions import NotFoundError, ValidationError
from splitsmart.services.group_service import (
    add_member_to_group, create_group, get_group_member_ids, get_user_groups, register_user
)
from splitsmart.tests.conftest import BOB, DAVE


@pytest.mark.integration
class TestCreateGroup:

    def test_name_is_stripped(self, db_session, users):
        group = create_group(db_session, "  Ski trip ", BOB)
        assert group.name == "Ski trip"
        assert get_group_member_ids(db_session, group.id) == [BOB]

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name(self, db_session, users, name):
        with pytest.raises(ValidationError, match="name is required"):
            create_group(db_session, name, BOB)
        assert get_user_groups(db_session, BOB) == []

    def test_unknown_creator(self, db_session, users):
        with pytest.raises(NotFoundError):
            create_group(db_session, "Ski trip", "ghost")


@pytest.mark.integration
class TestMembership:

    def test_add_unknown_user(self, db_session, group):
        with pytest.raises(NotFoundError):
            add_member_to_group(db_session, group, "ghost")

    def test_add_twice(self, db_session, group):
        with pytest.raises(ValidationError, match="already a member"):
            add_member_to_group(db_session, group, BOB)

    def test_register_normalizes_email(self, db_session):
        user = register_user(db_session, DAVE, "Dave", "  Dave@Example.COM ")
        assert user.email == "dave@example.com"

    def test_register_duplicate_email(self, db_session, users):
        with pytest.raises(ValidationError, match="already registered"):
            register_user(db_session, "u9", "Mallory", "alice@example.com")
