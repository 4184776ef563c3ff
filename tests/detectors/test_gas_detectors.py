"""Tests for the gas optimization detectors."""

from solsift import Severity

SOURCE = """
contract G {
    bool paused;
    bool constant FLAG = true;
    uint256 public constant LIMIT = 10;
    uint256 total = 0;
    uint256[] items;

    error Nope();

    function loop() external {
        uint256 sum = 0;
        for (uint256 i = 0; i < items.length; i++) {
            sum += items[i];
        }
        require(sum > 0, "sum must be positive");
        require(total != 0, "this revert reason is longer than thirty-two bytes");
        if (sum == 1) revert("bad");
        if (sum == 2) revert Nope();
        uint256 half = sum / 2;
        uint256 scaled = sum * 3;
        this.loop();
        sum++;
    }
}
"""


def _lines(report, detector_id):
    return [f.span.start.line for f in report.findings_for(detector_id)]


class TestGasDetectors:
    """Each detector against a shared fixture."""

    def test_array_length_in_loop(self, run_source):
        findings = run_source(SOURCE).findings_for("array-length-in-loop")
        assert [f.message for f in findings] == ["items.length is re-read on every iteration"]

    def test_post_increment(self, run_source):
        findings = run_source(SOURCE).findings_for("post-increment")
        assert [f.message for f in findings] == ["Use ++i instead of i++", "Use ++sum instead of sum++"]

    def test_prefix_increment_not_flagged(self, run_source):
        report = run_source(SOURCE.replace("i++", "++i").replace("sum++", "++sum"))
        assert report.findings_for("post-increment") == []

    def test_custom_errors(self, run_source):
        assert _lines(run_source(SOURCE), "custom-errors-instead-of-revert-strings") == [18, 19, 20]

    def test_long_revert_string(self, run_source):
        assert _lines(run_source(SOURCE), "long-revert-string") == [19]

    def test_bool_storage_skips_constants(self, run_source):
        findings = run_source(SOURCE).findings_for("bool-storage")
        assert [f.snippet for f in findings] == ["bool paused;"]

    def test_default_value_initialization(self, run_source):
        assert _lines(run_source(SOURCE), "default-value-initialization") == [8, 14, 15]

    def test_unchecked_loop_increment(self, run_source):
        assert _lines(run_source(SOURCE), "unchecked-loop-increment") == [15]

    def test_this_usage(self, run_source):
        findings = run_source(SOURCE).findings_for("this-usage")
        assert [f.message for f in findings] == ["External call to this.loop()"]

    def test_uint_gt_zero(self, run_source):
        assert _lines(run_source(SOURCE), "uint-gt-zero") == [18]

    def test_shift_instead_of_mul_div(self, run_source):
        findings = run_source(SOURCE).findings_for("shift-instead-of-mul-div")
        assert [f.snippet for f in findings] == ["uint256 half = sum / 2;"]

    def test_private_constants(self, run_source):
        findings = run_source(SOURCE).findings_for("private-constants")
        assert [f.snippet for f in findings] == ["uint256 public constant LIMIT = 10;"]

    def test_min_severity_drops_gas(self, run_source):
        report = run_source(SOURCE, min_severity="low")
        assert not any(f.severity is Severity.GAS for f in report.findings)
        assert report.findings_for("bool-storage") == []
