"""Tests for project labels and scoped identifiers."""

import pytest

from coderag.core.exceptions import ValidationError
from coderag.core.scoping import (
    ScopedId,
    make_scoped_id,
    parse_scoped_id,
    project_label,
    validate_project_id,
)


class TestProjectLabel:
    def test_capitalizes_type(self):
        assert project_label("billing", "class") == "Project_billing_Class"

    def test_keeps_project_id_verbatim(self):
        assert project_label("My-Proj", "interface") == "Project_My-Proj_Interface"


class TestScopedId:
    def test_make(self):
        assert make_scoped_id("billing", "com.acme.Invoice") == "billing:com.acme.Invoice"

    def test_make_requires_project(self):
        with pytest.raises(ValidationError):
            make_scoped_id("", "x")

    @pytest.mark.parametrize("project_id", ["a:b", "a:", ":a"])
    def test_make_rejects_separator_in_project(self, project_id):
        with pytest.raises(ValidationError, match="must not contain"):
            make_scoped_id(project_id, "c")

    def test_keys_of_different_projects_never_collide(self):
        # ("a", "b:c") would otherwise share a key with ("a:b", "c")
        assert parse_scoped_id(make_scoped_id("a", "b:c")) == ScopedId("a", "b:c")
        with pytest.raises(ValidationError):
            make_scoped_id("a:b", "c")

    def test_validate_returns_project_id(self):
        assert validate_project_id("billing-v2") == "billing-v2"

    def test_parse_splits_on_first_colon(self):
        parsed = parse_scoped_id("billing:com.acme:Invoice:total")
        assert parsed == ScopedId("billing", "com.acme:Invoice:total")
        assert parsed.project_id == "billing"
        assert parsed.entity_id == "com.acme:Invoice:total"

    def test_parse_round_trip_with_colons_in_entity(self):
        sid = make_scoped_id("p", "a:b:c")
        assert parse_scoped_id(sid) == ScopedId("p", "a:b:c")

    def test_parse_empty_entity_is_allowed(self):
        assert parse_scoped_id("p:") == ScopedId("p", "")

    @pytest.mark.parametrize("value", ["no-separator", ":entity", ""])
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_scoped_id(value)
