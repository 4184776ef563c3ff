"""Tests for remapping parsing and precedence."""

from pathlib import Path

import pytest

from solsift.resolution import Remapping, RemappingOrigin, RemappingTable, parse_remapping
from solsift.resolution.remappings import parse_remappings

ROOT = Path("/project")


class TestParseRemapping:
    def test_relative_target_joined_to_root(self):
        rule = parse_remapping("@oz/=lib/openzeppelin/", ROOT, RemappingOrigin.CONFIG)
        assert rule.prefix == "@oz/"
        assert rule.target == ROOT / "lib/openzeppelin"

    def test_absolute_target_kept(self):
        rule = parse_remapping("x/=/opt/x/", ROOT, RemappingOrigin.EXPLICIT)
        assert rule.target == Path("/opt/x")

    def test_context_is_dropped(self):
        rule = parse_remapping("src/:@oz/=lib/oz/", ROOT, RemappingOrigin.CONFIG)
        assert rule.prefix == "@oz/"

    @pytest.mark.parametrize("text", ["no-equals", "=lib/x/", "ctx:=lib/x/"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_remapping(text, ROOT, RemappingOrigin.CONFIG)

    def test_apply(self):
        rule = parse_remapping("@oz/=lib/oz/contracts/", ROOT, RemappingOrigin.CONFIG)
        assert rule.apply("@oz/token/ERC20.sol") == ROOT / "lib/oz/contracts/token/ERC20.sol"

    def test_parse_many_skips_comments(self):
        rules = parse_remappings(["# comment", "", "a/=x/", "b/=y/"], ROOT, RemappingOrigin.CONFIG)
        assert [(r.prefix, r.order) for r in rules] == [("a/", 0), ("b/", 1)]


class TestRemappingTable:
    """Longest prefix wins; ties go to origin, then to declaration order."""

    def test_longest_prefix_wins(self):
        table = RemappingTable(
            [
                Remapping("@oz/", ROOT / "short", RemappingOrigin.EXPLICIT),
                Remapping("@oz/contracts/", ROOT / "long", RemappingOrigin.AUTO),
            ]
        )
        assert table.candidates("@oz/contracts/A.sol")[0] == ROOT / "long" / "A.sol"

    def test_origin_breaks_ties(self):
        table = RemappingTable(
            [
                Remapping("@oz/", ROOT / "auto", RemappingOrigin.AUTO),
                Remapping("@oz/", ROOT / "config", RemappingOrigin.CONFIG),
                Remapping("@oz/", ROOT / "explicit", RemappingOrigin.EXPLICIT),
            ]
        )
        assert [p.parent.name for p in table.candidates("@oz/A.sol")] == ["explicit", "config", "auto"]

    def test_order_breaks_remaining_ties(self):
        table = RemappingTable(
            [
                Remapping("@oz/", ROOT / "second", RemappingOrigin.CONFIG, order=1),
                Remapping("@oz/", ROOT / "first", RemappingOrigin.CONFIG, order=0),
            ]
        )
        assert table.candidates("@oz/A.sol")[0].parent.name == "first"

    def test_no_match(self):
        table = RemappingTable([Remapping("@oz/", ROOT / "oz", RemappingOrigin.CONFIG)])
        assert table.candidates("forge-std/Test.sol") == []
