"""Tests for create/fetch/update/delete of API objects."""

from datetime import UTC
from datetime import datetime

import pytest
from pydantic import ValidationError

from title_editor_client.exceptions import APIConnectionError
from title_editor_client.exceptions import InvalidDataError
from title_editor_client.exceptions import MissingFieldError
from title_editor_client.exceptions import NotFoundError
from title_editor_client.exceptions import ReadOnlyFieldError
from title_editor_client.exceptions import UnsupportedError
from title_editor_client.objects import ComponentCriterion
from title_editor_client.objects import Patch
from title_editor_client.objects import Requirement
from title_editor_client.objects import SoftwareTitle
from title_editor_client.schema import AndOr


class TestCreate:
    """Kind.create saves on the server and applies the response."""

    def test_create_root(self, title, server):
        assert title.software_title_id is not None
        assert title.persisted
        assert not title.creating
        assert title.enabled is False
        assert title.local
        assert server.calls("POST") == [("POST", "softwaretitles")]

    def test_create_sends_wire_names_only_for_sendable_fields(self, title, server):
        body = server.last_body("POST")
        assert body == {"id": "com.x.t", "name": "T", "publisher": "X Corp", "currentVersion": "1.0"}

    def test_create_sets_timestamp_from_response(self, title):
        assert isinstance(title.last_modified, datetime)
        assert title.last_modified.tzinfo is UTC

    def test_create_child_posts_under_container(self, title, server):
        req_id = title.requirements.add_criterion("Application Title", "is", "X.app")
        assert server.calls("POST")[-1] == ("POST", f"softwaretitles/{title.software_title_id}/requirements")
        requirement = title.requirements.member_by_id(req_id)
        assert requirement.software_title_id == title.software_title_id
        assert requirement.container is title
        assert requirement.software_title is title

    def test_child_body_uses_boolean_join_operator(self, title, server):
        title.requirements.add_criterion("Application Title", "is", "X.app", and_or="or")
        body = server.last_body("POST")
        assert body["and"] is False
        assert "andOr" not in body
        assert "requirementId" not in body
        assert body["absoluteOrderId"] == 0

    def test_missing_required_field(self, cnx, server):
        with pytest.raises(MissingFieldError):
            SoftwareTitle.create(cnx=cnx, unique_id="com.x.t", name="T")
        assert server.calls() == []

    def test_unknown_attribute(self, cnx):
        with pytest.raises(InvalidDataError):
            SoftwareTitle.create(
                cnx=cnx, unique_id="a", name="T", publisher="X", current_version="1", colour="blue"
            )

    def test_contained_kind_needs_container(self, cnx):
        with pytest.raises(UnsupportedError):
            Patch.create(cnx=cnx, version="1.0")

    def test_wrong_container_kind(self, title):
        with pytest.raises(UnsupportedError):
            ComponentCriterion.create(container=title, name="n", operator="is", type="recon")

    def test_failed_create_changes_nothing(self, title, server):
        server.fail_next("POST", "patches")
        with pytest.raises(APIConnectionError):
            title.patches.add_patch("2.0")
        assert title.patches.is_empty()
        assert server.records["patches"] == {}

    def test_direct_construction_is_refused(self):
        with pytest.raises(UnsupportedError):
            SoftwareTitle(unique_id="com.x.t", name="T")


class TestFetch:
    def test_fetch_builds_the_whole_tree(self, title, ready_patch, cnx):
        title.requirements.add_criterion("Application Title", "is", "X.app")

        fetched = SoftwareTitle.fetch(title.software_title_id, cnx=cnx)

        assert fetched == title
        assert fetched is not title
        assert fetched.unique_id == "com.x.t"
        assert len(fetched.requirements) == 1
        assert fetched.requirements[0].and_or is AndOr.AND
        patch = fetched.patches.first
        assert patch.patch_id == ready_patch.patch_id
        assert patch.capabilities[0].value == 8192
        assert patch.component.criteria[0].name == "Application Version"
        assert patch.component.container is patch

    def test_instantiate_from_container_makes_no_requests(self, title, server):
        before = len(server.requests)
        patch = Patch.instantiate_from_container(title, patchId=99, version="9.0", absoluteOrderId=0)
        assert patch.persisted
        assert patch.patch_id == 99
        assert len(server.requests) == before

    def test_sub_resources_are_not_fetchable(self, cnx):
        with pytest.raises(UnsupportedError):
            Requirement.fetch(1, cnx=cnx)

    def test_fetchable_sub_resource(self, ready_patch, cnx):
        criterion = ready_patch.component.criteria.first
        fetched = ComponentCriterion.fetch(criterion.criteria_id, cnx=cnx)
        assert fetched.value == "1.0"
        assert fetched.container is None

    def test_fetch_missing(self, cnx):
        with pytest.raises(NotFoundError):
            Patch.fetch(12345, cnx=cnx)

    def test_kinds_fulfil_lifecycle_contract(self):
        for kind in (SoftwareTitle, Patch, Requirement, ComponentCriterion):
            assert isinstance(kind.RSRC_PATH, str)
            assert kind.PRIMARY_ID_KEY in kind.model_fields
            assert callable(kind.handle_create_response)
            assert callable(kind.handle_update_response)


class TestUpdate:
    """Field changes go to the server first."""

    def test_assignment_updates_server(self, title, server):
        title.name = "New Name"
        assert server.calls("PUT")[-1] == ("PUT", f"softwaretitles/{title.software_title_id}")
        assert server.last_body("PUT") == {"name": "New Name"}
        assert title.name == "New Name"
        assert server.records["softwaretitles"][title.software_title_id]["name"] == "New Name"

    def test_update_method_returns_id(self, title):
        assert title.update("publisher", "Y Corp") == title.software_title_id
        assert title.publisher == "Y Corp"

    def test_readonly_field(self, title, server):
        with pytest.raises(ReadOnlyFieldError):
            title.software_title_id = 5
        assert server.calls("PUT") == []

    def test_position_is_readonly_to_callers(self, title):
        req_id = title.requirements.add_criterion("Application Title", "is", "X.app")
        with pytest.raises(ReadOnlyFieldError):
            title.requirements.member_by_id(req_id).absolute_order_id = 3

    def test_unknown_field(self, title):
        with pytest.raises(InvalidDataError):
            title.update("colour", "blue")

    def test_invalid_value_is_rejected_before_sending(self, title, server):
        with pytest.raises(ValidationError):
            title.enabled = "sometimes"
        assert server.calls("PUT") == []
        assert title.enabled is False

    def test_server_failure_leaves_local_value(self, title, server):
        server.fail_next("PUT", "softwaretitles")
        with pytest.raises(APIConnectionError):
            title.name = "New Name"
        assert title.name == "T"

    def test_timestamp_converted_for_the_wire(self, title, server):
        patch = title.patches.member_by_id(title.patches.add_patch("1.0"))
        patch.release_date = datetime(2024, 3, 1, 9, 30)
        assert server.last_body("PUT") == {"releaseDate": "2024-03-01T09:30:00Z"}
        assert patch.release_date.tzinfo is UTC

    def test_child_change_refreshes_root_timestamp(self, title):
        req_id = title.requirements.add_criterion("Application Title", "is", "X.app")
        title._set_local("last_modified", datetime(2000, 1, 1, tzinfo=UTC))

        title.requirements.update_member(req_id, and_or=AndOr.OR)

        assert title.requirements.member_by_id(req_id).and_or is AndOr.OR
        assert title.last_modified > datetime(2000, 1, 1, tzinfo=UTC)


class TestDelete:
    def test_delete_sets_sentinel(self, title, server):
        old_id = title.software_title_id
        assert title.delete() == old_id
        assert title.software_title_id == -1
        assert title.deleted_id == old_id
        assert not title.persisted
        assert old_id not in server.records["softwaretitles"]

    def test_second_delete_raises_without_server_call(self, title, server):
        title.delete()
        with pytest.raises(NotFoundError):
            title.delete()
        assert len(server.calls("DELETE")) == 1

    def test_update_after_delete(self, title):
        title.delete()
        with pytest.raises(NotFoundError):
            title.name = "Gone"

    def test_deleted_objects_are_not_equal(self, title, cnx):
        other = SoftwareTitle.create(cnx=cnx, unique_id="com.x.u", name="U", publisher="X", current_version="1")
        title.delete()
        other.delete()
        assert (title == other) is False
