"""
Integration tests for EntityRepository against PostgreSQL.

Run with: ENTITYREPO_ENV=test pytest src/entityrepo/repository/integration_test.py -v
"""

import pandas as pd
import pytest
from psycopg.errors import NotNullViolation

from entityrepo.errors import MissingKeyAttribute


class TestUserLifecycle:
    """Create, read, update and delete a single-key entity"""

    def test_full_lifecycle(self, user_repo):
        user_id = user_repo.create({"name": "Ann"})

        assert user_id is not None
        created = user_repo.get_one(user_id)
        assert created.id == user_id
        assert created.name == "Ann"

        assert user_repo.update_by_pk({"name": "Anna"}, user_id) == 1
        assert user_repo.get_one(user_id).name == "Anna"

        assert user_repo.delete_one(user_id) == 1
        assert user_repo.get_one(user_id) is None

    def test_create_round_trip_keeps_fields(self, user_repo):
        record = {"name": "Bob", "email": "bob@example.com", "active": False}

        user_id = user_repo.create(record)

        stored = user_repo.get_one(user_id).get_data()
        assert {k: stored[k] for k in record} == record

    def test_create_executor_error_propagates(self, user_repo):
        with pytest.raises(NotNullViolation):
            user_repo.create({"email": "nobody@example.com"})

    def test_scalar_and_mapping_keys_find_same_row(self, user_repo, sample_users):
        user_id = sample_users[1]["id"]

        assert user_repo.get_one(user_id) == user_repo.get_one({"id": user_id})

    def test_get_one_not_found(self, user_repo):
        assert user_repo.get_one(99999) is None

    def test_update_one_from_entity(self, user_repo, sample_users):
        user = user_repo.get_one(sample_users[0]["id"])
        user["email"] = "ann@new.example.com"

        assert user_repo.update_one(user) == 1
        assert user_repo.get_one(user.id).email == "ann@new.example.com"

    def test_update_missing_key_changes_nothing(self, user_repo, sample_users):
        with pytest.raises(MissingKeyAttribute):
            user_repo.update_one({"name": "Nobody"})

        names = sorted(u.name for u in user_repo.get_set())
        assert names == ["Ann", "Bob", "Cid"]

    def test_delete_missing_row_returns_zero(self, user_repo):
        assert user_repo.delete_one(99999) == 0


class TestGetSet:
    """Tests for EntityRepository.get_set() and get_frame()"""

    def test_get_set_returns_all_rows(self, user_repo, sample_users):
        result = user_repo.get_set()

        assert sorted(u.id for u in result) == sorted(u["id"] for u in sample_users)

    def test_get_set_filters_with_bind(self, user_repo, sample_users):
        result = user_repo.get_set("active = %(active)s", {"active": True}, order="name")

        assert [u.name for u in result] == ["Ann", "Cid"]

    @pytest.mark.parametrize(
        "limit,offset,expected",
        [
            (1, None, ["Ann"]),
            (1, 1, ["Bob"]),
            (2, 1, ["Bob", "Cid"]),
            (5, 3, []),
        ],
    )
    def test_get_set_window(self, user_repo, sample_users, limit, offset, expected):
        result = user_repo.get_set(order="id", limit=limit, offset=offset)

        assert [u.name for u in result] == expected

    def test_get_set_no_match(self, user_repo, sample_users):
        assert user_repo.get_set("name = %(name)s", {"name": "Zed"}) == []

    def test_get_frame(self, user_repo, sample_users):
        df = user_repo.get_frame(order="id")

        assert isinstance(df, pd.DataFrame)
        assert df["name"].tolist() == ["Ann", "Bob", "Cid"]
        assert df["balance"].dtype == float


class TestCompositeKey:
    """Tests for an entity keyed by (order_id, item_id)"""

    def test_get_one_by_mapping(self, order_item_repo, sample_order_items):
        result = order_item_repo.get_one({"order_id": 3, "item_id": 5})

        assert result.qty == 2

    def test_create_returns_key_mapping(self, order_item_repo):
        result = order_item_repo.create({"order_id": 9, "item_id": 1, "qty": 4})

        assert result == {"order_id": 9, "item_id": 1}
        assert order_item_repo.get_one(result).qty == 4

    def test_delete_one_uses_only_key_fields(self, order_item_repo, sample_order_items):
        result = order_item_repo.delete_one({"order_id": 3, "item_id": 5, "qty": 2})

        assert result == 1
        assert order_item_repo.get_one({"order_id": 3, "item_id": 5}) is None
        assert len(order_item_repo.get_set()) == 2

    def test_update_one(self, order_item_repo, sample_order_items):
        assert order_item_repo.update_one({"order_id": 4, "item_id": 5, "qty": 1}) == 1

        assert order_item_repo.get_one({"order_id": 4, "item_id": 5}).qty == 1

    def test_delete_set(self, order_item_repo, sample_order_items):
        result = order_item_repo.delete_set("order_id = %(order_id)s", {"order_id": 3})

        assert result == 2
        assert [i.order_id for i in order_item_repo.get_set()] == [4]

    def test_update_set(self, order_item_repo, sample_order_items):
        result = order_item_repo.update_set({"qty": 0}, "item_id = %(item)s", {"item": 5})

        assert result == 2
        quantities = {(i.order_id, i.item_id): i.qty for i in order_item_repo.get_set()}
        assert quantities == {(3, 5): 0, (3, 6): 1, (4, 5): 0}
