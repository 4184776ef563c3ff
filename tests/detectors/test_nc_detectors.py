"""Tests for the non-critical detectors."""

SOURCE = """
pragma solidity ^0.8.0;

import "./Lib.sol";
import "./Lib.sol";
import "forge-std/console.sol";

interface Feed {
    event Update(uint256 value, address who);
    event Indexed(uint256 indexed value);
}

library Lib {
    function helper(uint256 x) internal pure returns (uint256) { return x; }
}

contract N {
    uint256 constant maxSupply = 1000000;
    uint256 public constant RATE = 365 days;
    uint256 count;

    // TODO: remove before launch
    function spin() internal {
        while (true) {
            count += 1;
        }
    }

    function _ok() private {}

    function hook() public virtual {}

    function stub() public {}

    function check() external {
        if (count == 0) {}
        uint256 small = 10_000;
        uint256 theQuickBrownFoxJumpsOverTheLazyDogAgainAndAgainUntilTheLineIsLongEnough = small + count + maxSupply + RATE;
    }
}
"""


def _lines(report, detector_id):
    return [f.span.start.line for f in report.findings_for(detector_id)]


class TestNonCriticalDetectors:
    """Each detector against a shared fixture."""

    def test_floating_pragma_only_for_ranges(self, run_source):
        assert _lines(run_source(SOURCE), "floating-pragma") == [4]

    def test_spdx_present(self, run_source):
        assert run_source(SOURCE).findings_for("missing-spdx") == []

    def test_todo_left(self, run_source):
        findings = run_source(SOURCE).findings_for("todo-left")
        assert [f.message for f in findings] == ["Unresolved TODO comment"]
        assert findings[0].span.start.line == 24

    def test_line_length(self, run_source):
        findings = run_source(SOURCE).findings_for("line-length")
        assert [f.span.start.line for f in findings] == [40]
        assert findings[0].span.start.column == 120
        assert findings[0].message == "Line is 124 characters long"

    def test_constant_case(self, run_source):
        findings = run_source(SOURCE).findings_for("constant-case")
        assert [f.message for f in findings] == ["Constant maxSupply should be UPPER_CASE"]

    def test_interface_naming(self, run_source):
        findings = run_source(SOURCE).findings_for("interface-naming")
        assert [f.message for f in findings] == ["Interface Feed should be prefixed with I"]

    def test_multiple_contracts(self, run_source):
        findings = run_source(SOURCE).findings_for("multiple-contracts")
        assert len(findings) == 1
        assert findings[0].span.start.line == 15
        assert findings[0].message == "File declares 3 contracts, interfaces or libraries"

    def test_empty_blocks(self, run_source):
        # hook is virtual and stays empty on purpose
        assert _lines(run_source(SOURCE), "empty-blocks") == [31, 35, 38]

    def test_event_missing_indexed(self, run_source):
        findings = run_source(SOURCE).findings_for("event-missing-indexed")
        assert [f.message for f in findings] == ["Event Update has no indexed fields"]

    def test_console_log_import(self, run_source):
        findings = run_source(SOURCE).findings_for("console-log-import")
        assert [f.snippet for f in findings] == ['import "forge-std/console.sol";']

    def test_large_literal(self, run_source):
        findings = run_source(SOURCE).findings_for("large-literal")
        assert [f.message for f in findings] == ["Use scientific notation or underscores for 1000000"]

    def test_default_visibility(self, run_source):
        assert _lines(run_source(SOURCE), "default-visibility") == [20, 22]

    def test_while_true_loop(self, run_source):
        assert _lines(run_source(SOURCE), "while-true-loop") == [26]

    def test_underscore_prefix_skips_libraries(self, run_source):
        findings = run_source(SOURCE).findings_for("underscore-prefix")
        assert [f.message for f in findings] == ["Non-public function spin should start with _"]

    def test_year_365_days(self, run_source):
        assert _lines(run_source(SOURCE), "year-365-days") == [21]

    def test_duplicate_import(self, run_source):
        findings = run_source(SOURCE).findings_for("duplicate-import")
        assert [f.span.start.line for f in findings] == [7]
        assert findings[0].message == "'./Lib.sol' is imported more than once"


class TestMissingSpdx:
    def test_reported_on_first_line(self, run_source):
        findings = run_source("contract A {}\n", header=False).findings_for("missing-spdx")
        assert len(findings) == 1
        assert findings[0].span.start.line == 1


LEDGER = """\
// SPDX-License-Identifier: MIT
PRAGMA

library SafeMath {
    function add(uint256 a, uint256 b) internal pure returns (uint256) { return a + b; }
}

contract Ledger {
    using SafeMath for uint256;

    mapping(address => uint256) balances;
    mapping(address owner => uint256 amount) named;
    mapping(address owner => mapping(address => uint256)) nested;

    function tag(bytes memory a, bytes memory b) external pure returns (bytes memory) {
        return abi.encodePacked(a, b);
    }
}
"""


def _ledger(run_source, pragma):
    return run_source(LEDGER.replace("PRAGMA", pragma), header=False)


class TestVersionGatedDetectors:
    """Advice that only applies once the pragma reaches a compiler release."""

    def test_named_mappings(self, run_source):
        findings = _ledger(run_source, "pragma solidity ^0.8.20;").findings_for("named-mappings")
        assert [f.span.start.line for f in findings] == [11, 13]
        assert findings[0].message == "Mapping balances has unnamed keys or values"

    def test_named_mappings_before_0_8_18(self, run_source):
        report = _ledger(run_source, "pragma solidity ^0.8.0;")
        assert report.findings_for("named-mappings") == []

    def test_deprecated_safemath(self, run_source):
        findings = _ledger(run_source, "pragma solidity ^0.8.0;").findings_for("deprecated-safemath")
        assert [f.snippet for f in findings] == ["using SafeMath for uint256;"]
        assert findings[0].message == "using SafeMath is redundant with checked arithmetic"

    def test_safemath_still_needed_on_0_7(self, run_source):
        report = _ledger(run_source, "pragma solidity ^0.7.6;")
        assert report.findings_for("deprecated-safemath") == []

    def test_prefer_concat(self, run_source):
        report = _ledger(run_source, "pragma solidity 0.8.4;")
        assert [f.snippet for f in report.findings_for("prefer-concat")] == ["return abi.encodePacked(a, b);"]

    def test_prefer_concat_open_range(self, run_source):
        report = _ledger(run_source, "pragma solidity >=0.8.0 <0.9.0;")
        assert len(report.findings_for("prefer-concat")) == 1

    def test_prefer_concat_before_0_8_4(self, run_source):
        report = _ledger(run_source, "pragma solidity >=0.7.0 <0.8.4;")
        assert report.findings_for("prefer-concat") == []

    def test_no_pragma(self, run_source):
        report = _ledger(run_source, "")
        for detector_id in ("named-mappings", "deprecated-safemath", "prefer-concat"):
            assert report.findings_for(detector_id) == []
