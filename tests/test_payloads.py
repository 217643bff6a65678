"""Unit tests for the payload catalog."""

import pytest

from securetest.payloads import (
    PAYLOAD_CATALOG,
    SQLI_LEVELS,
    XSS_LEVELS,
    parse_custom_payloads,
    payloads_for,
)


class TestCatalog:

    def test_xss_levels_are_nested(self):
        """Each deeper XSS level starts with the previous level's payloads."""
        shallow = payloads_for("xss", "shallow")
        normal = payloads_for("xss", "normal")
        deep = payloads_for("xss", "deep")
        assert (len(shallow), len(normal), len(deep)) == (3, 7, 15)
        assert normal[:len(shallow)] == shallow
        assert deep[:len(normal)] == normal

    def test_sqli_level_sizes(self):
        assert [len(payloads_for("sqli", lvl)) for lvl in SQLI_LEVELS] == [5, 7, 11]

    def test_every_xss_payload_carries_a_marker_or_prompt(self):
        for payload in payloads_for("xss", "deep"):
            assert "XSS" in payload or "prompt" in payload or "alert(1)" in payload \
                or "document.cookie" in payload

    def test_lookup_is_repeatable(self):
        """Repeated lookups return equal lists; mutating one does not leak."""
        first = payloads_for("sqli", "basic")
        first.append("tampered")
        assert payloads_for("sqli", "basic") == list(PAYLOAD_CATALOG["sqli"]["basic"])
        assert "tampered" not in payloads_for("sqli", "basic")

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            PAYLOAD_CATALOG["xss"]["shallow"] = ()

    @pytest.mark.parametrize("vuln_class,level", [("xss", "extreme"), ("sqli", "normal"), ("csrf", "basic")])
    def test_unknown_level_raises(self, vuln_class, level):
        with pytest.raises(KeyError):
            payloads_for(vuln_class, level)

    def test_level_names(self):
        assert XSS_LEVELS == ("shallow", "normal", "deep")
        assert SQLI_LEVELS == ("basic", "intermediate", "advanced")


class TestCustomPayloads:

    def test_blank_lines_dropped(self):
        assert parse_custom_payloads("<b>x</b>\n\n   \nabc") == ["<b>x</b>", "abc"]

    def test_only_blank_lines(self):
        assert parse_custom_payloads("\n \n") == []
