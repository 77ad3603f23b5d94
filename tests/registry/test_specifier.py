"""Tests for package specifier parsing."""

import pytest

from node_extractor.errors import InvalidSpecifier
from node_extractor.registry.specifier import PackageSpecifier, split_specifiers


class TestParse:
    def test_plain_name(self):
        spec = PackageSpecifier.parse("n8n-nodes-badges")
        assert spec == PackageSpecifier(name="n8n-nodes-badges")
        assert spec.scope is None
        assert spec.version is None

    def test_name_with_version(self):
        spec = PackageSpecifier.parse("n8n-nodes-badges@1.2.0")
        assert spec.name == "n8n-nodes-badges"
        assert spec.version == "1.2.0"
        assert spec.scope is None

    def test_scoped_with_version(self):
        spec = PackageSpecifier.parse("@acme/n8n-nodes-crm@2.0.1")
        assert (spec.scope, spec.name, spec.version) == ("acme", "n8n-nodes-crm", "2.0.1")

    def test_scoped_without_version(self):
        spec = PackageSpecifier.parse("@acme/n8n-nodes-crm")
        assert spec.scope == "acme"
        assert spec.version is None

    def test_trailing_at_means_no_version(self):
        assert PackageSpecifier.parse("pkg@").version is None

    def test_whitespace_is_trimmed(self):
        assert PackageSpecifier.parse("  pkg@1.0.0 ").name == "pkg"

    @pytest.mark.parametrize("raw", ["", "   ", "@acme", "@/pkg", "@acme/", "a/b"])
    def test_invalid(self, raw):
        with pytest.raises(InvalidSpecifier):
            PackageSpecifier.parse(raw)


class TestDerivedNames:
    def test_full_name(self):
        assert PackageSpecifier.parse("@acme/pkg@1.0.0").full_name == "@acme/pkg"
        assert PackageSpecifier.parse("pkg@1.0.0").full_name == "pkg"

    def test_clean_id_strips_scope_and_prefix(self):
        assert PackageSpecifier.parse("@acme/n8n-nodes-crm").clean_id() == "crm"
        assert PackageSpecifier.parse("my-nodes").clean_id() == "my-nodes"

    def test_clean_id_custom_prefix(self):
        assert PackageSpecifier.parse("flow-nodes-x").clean_id("flow-nodes-") == "x"

    def test_icon_id_keeps_prefix(self):
        assert PackageSpecifier.parse("@acme/n8n-nodes-crm").icon_id == "n8n-nodes-crm"

    def test_file_stem(self):
        assert PackageSpecifier.parse("@acme/n8n-nodes-crm").file_stem == "acmen8n-nodes-crm"

    def test_requirement_defaults_to_latest(self):
        assert PackageSpecifier.parse("pkg").requirement == ("pkg", "latest")
        assert PackageSpecifier.parse("pkg@2.1.0").requirement == ("pkg", "2.1.0")

    def test_str_round_trips(self):
        for raw in ("pkg", "pkg@1.0.0", "@acme/pkg", "@acme/pkg@1.0.0"):
            assert str(PackageSpecifier.parse(raw)) == raw


def test_split_specifiers():
    assert split_specifiers("a, b@1.0.0,,@s/c ,") == ["a", "b@1.0.0", "@s/c"]
    assert split_specifiers("") == []
