"""End-to-end tests for the three-stage analysis pipeline."""

import pytest

from solsift import BUILTIN_DETECTORS, DiagnosticKind, analyze, load_config
from solsift.exceptions import InvalidConfigError, ScopeError

SPDX = "// SPDX-License-Identifier: MIT\npragma solidity 0.8.20;\n"

PROJECT = {
    "src/Vault.sol": SPDX
    + """
import "./Token.sol";

contract Vault {
    Token token;
    uint256[] shares;

    function sweep() external {
        require(tx.origin == address(0));
        for (uint256 i = 0; i < shares.length; i++) {
            token.burn(shares[i]);
        }
    }
}
""",
    "src/Token.sol": SPDX
    + """
contract Token {
    function burn(uint256 amount) external {}
    function height() external view returns (uint256) {
        return block.number;
    }
}
""",
    "src/Feed.sol": SPDX
    + """
interface IFeed {
    function latestRoundData() external view returns (uint80, int256, uint256, uint256, uint80);
}

contract Reader {
    IFeed feed;

    function read() external view returns (int256 answer) {
        (, answer, , , ) = feed.latestRoundData();
    }
}
""",
    "src/nested/Ledger.sol": SPDX
    + """
contract Ledger {
    bool open;
    mapping(address => uint256) balances;
}
""",
}


class TestDeterminism:
    """Reports are identical regardless of run or worker count."""

    def test_repeated_runs(self, run_project):
        first = run_project(PROJECT)
        second = run_project(PROJECT)
        assert first.to_json() == second.to_json()

    def test_worker_count_does_not_change_report(self, run_project):
        serial = run_project(PROJECT, workers=1)
        parallel = run_project(PROJECT, workers=4)
        assert serial.findings
        assert serial.to_json() == parallel.to_json()

    def test_counts(self, run_project):
        report = run_project(PROJECT)
        assert report.files_analyzed == 4
        assert report.detectors_run == len(BUILTIN_DETECTORS)


class TestSelection:
    """Excluding a detector removes exactly its findings."""

    def test_exclude_detector(self, run_project):
        full = run_project(PROJECT)
        trimmed = run_project(PROJECT, exclude_detectors=["tx-origin-usage"])
        assert full.findings_for("tx-origin-usage")
        assert list(trimmed.findings) == [f for f in full.findings if f.detector_id != "tx-origin-usage"]
        assert trimmed.detectors_run == full.detectors_run - 1

    def test_protocol_flag(self, run_project):
        gated = {spec.id for spec in BUILTIN_DETECTORS if spec.feature == "uses_l2"}
        full = run_project(PROJECT)
        off = run_project(PROJECT, protocol={"uses_l2": False})
        assert any(f.detector_id in gated for f in full.findings)
        assert list(off.findings) == [f for f in full.findings if f.detector_id not in gated]

    def test_min_severity(self, run_project):
        report = run_project(PROJECT, min_severity="medium")
        assert report.findings
        assert all(f.severity.rank >= 3 for f in report.findings)


class TestFailureIsolation:
    def test_parse_failure_does_not_stop_other_files(self, run_project):
        files = dict(PROJECT)
        files["src/Broken.sol"] = SPDX + "contract Broken {\n    function f( external {\n"
        report = run_project(files)

        failures = report.diagnostics_of(DiagnosticKind.PARSE_FAILURE)
        assert [d.file for d in failures] == ["src/Broken.sol"]
        assert failures[0].line is not None
        assert report.findings_for("tx-origin-usage")
        assert not any(f.file == "src/Broken.sol" for f in report.findings)
        assert report.files_analyzed == 4

    def test_unresolved_import_is_a_diagnostic(self, run_source):
        report = run_source(
            """
            import "./Missing.sol";

            contract A {
                function f() external {
                    require(tx.origin == address(0));
                }
            }
            """
        )
        unresolved = report.diagnostics_of(DiagnosticKind.UNRESOLVED_IMPORT)
        assert len(unresolved) == 1
        assert "./Missing.sol" in unresolved[0].message
        assert report.findings_for("tx-origin-usage")

    def test_cycle_is_isolated(self, run_source):
        report = run_source(
            """
            contract X is Y {}
            contract Y is X {}

            contract Z {
                function f() external {
                    require(tx.origin == address(0));
                }
            }
            """
        )
        cycles = report.diagnostics_of(DiagnosticKind.CYCLIC_INHERITANCE)
        assert len(cycles) == 1
        assert "X" in cycles[0].message and "Y" in cycles[0].message
        assert [f.snippet for f in report.findings_for("tx-origin-usage")] == [
            "require(tx.origin == address(0));"
        ]


class TestScope:
    def test_missing_scope_path(self, run_project):
        with pytest.raises(ScopeError):
            run_project(PROJECT, scope=["does-not-exist"])

    def test_scope_without_solidity(self, run_project):
        with pytest.raises(ScopeError):
            run_project({"docs/README.md": "nothing here\n"}, scope=["docs"])

    def test_explicit_scope_subset(self, run_project):
        report = run_project(PROJECT, scope=["src/nested"])
        assert report.files_analyzed == 1
        assert {f.file for f in report.findings} == {"src/nested/Ledger.sol"}

    def test_exclude_glob(self, run_project):
        report = run_project(PROJECT, exclude=["src/nested/*"])
        assert report.files_analyzed == 3

    def test_default_scope_is_source_directory(self, run_project):
        files = dict(PROJECT)
        files["foundry.toml"] = '[profile.default]\nsrc = "src"\n'
        files["test/Vault.t.sol"] = SPDX + "contract VaultTest {}\n"
        report = run_project(files)
        assert report.files_analyzed == 4
        assert not any(f.file.startswith("test/") for f in report.findings)

    def test_imported_files_are_not_reported(self, run_project):
        report = run_project(PROJECT, scope=["src/Vault.sol"])
        assert report.files_analyzed == 1
        assert {f.file for f in report.findings} == {"src/Vault.sol"}
        # Token is still loaded for symbols: the loop call resolves to a contract.
        assert report.findings_for("external-call-in-loop")


OWNED = {
    "src/Vault.sol": SPDX
    + """
import "@oz/access/Ownable.sol";

contract Vault is Ownable {}
""",
}


class TestRemappings:
    def test_foundry_remappings(self, run_project):
        files = dict(OWNED)
        files["foundry.toml"] = "[profile.default]\n"
        files["remappings.txt"] = "@oz/=lib/oz/\n"
        files["lib/oz/access/Ownable.sol"] = SPDX + "contract Ownable {}\n"
        report = run_project(files)

        assert report.diagnostics_of(DiagnosticKind.UNRESOLVED_IMPORT) == []
        assert report.files_analyzed == 1
        assert [f.file for f in report.findings_for("two-step-ownership-transfer")] == ["src/Vault.sol"]

    def test_explicit_remapping_wins(self, run_project):
        files = dict(OWNED)
        files["foundry.toml"] = "[profile.default]\n"
        files["remappings.txt"] = "@oz/=lib/missing/\n"
        files["vendor/oz/access/Ownable.sol"] = SPDX + "contract Ownable {}\n"
        report = run_project(files, remappings=["@oz/=vendor/oz/"])

        assert report.diagnostics_of(DiagnosticKind.UNRESOLVED_IMPORT) == []
        assert report.findings_for("two-step-ownership-transfer")

    def test_unresolved_without_remapping(self, run_project):
        report = run_project(OWNED)
        assert len(report.diagnostics_of(DiagnosticKind.UNRESOLVED_IMPORT)) == 1
        assert len(report.diagnostics_of(DiagnosticKind.UNRESOLVED_REFERENCE)) == 1

    def test_malformed_remapping(self, run_project):
        with pytest.raises(InvalidConfigError):
            run_project(OWNED, remappings=["no-equals-sign"])


class TestApi:
    def test_analyze_with_explicit_root(self, write_project):
        root = write_project(PROJECT)
        report = analyze(load_config(root=root, workers=2))
        assert report.files_analyzed == 4
