"""
Tests for ui/report.py.

Covers:
  - Summary panel counts and overall verdict
  - Findings panel rows and details
  - Health score bar, resource line, recommendations
  - Diagnosis panel fix listing (valid fixes only), display limit, badges
  - Theme score colours
  - Suggestions list
"""

from io import StringIO

from rich.console import Console

from debdoctor.checks.base import Finding, ResultAggregator, Severity
from debdoctor.diagnose.models import Diagnosis
from debdoctor.fixer.models import Fix, RiskLevel
from debdoctor.summary import DiskUsage, ResourceStatus, SystemSummary
from debdoctor.ui import theme
from debdoctor.ui.report import (
    build_diagnosis_panel,
    build_summary_panel,
    fix_line,
    print_report,
    print_suggestions,
)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _console() -> tuple[Console, StringIO]:
    """Return a Console that captures output in a StringIO buffer."""
    buf = StringIO()
    con = Console(file=buf, highlight=False, no_color=True, width=120)
    return con, buf


def _render(renderable) -> str:
    con, buf = _console()
    con.print(renderable)
    return buf.getvalue()


def _finding(severity: Severity, name: str = "Test Check", **kwargs) -> Finding:
    return Finding(name=name, severity=severity, message=kwargs.pop("message", "something"), **kwargs)


def _fix(fix_id: str, **kwargs) -> Fix:
    defaults = dict(id=fix_id, title=f"Fix {fix_id}", description="d", commands=("true",))
    defaults.update(kwargs)
    return Fix(**defaults)


# ── print_report ──────────────────────────────────────────────────────────────

class TestPrintReport:
    def test_empty_aggregator(self):
        con, buf = _console()
        print_report(ResultAggregator(), con)
        assert "No results to display." in buf.getvalue()

    def test_summary_and_findings(self):
        agg = ResultAggregator()
        agg.add_result(_finding(Severity.INFO, name="System Information", message="Debian 12"))
        agg.add_result(_finding(Severity.WARNING, name="Disk Space", message="Disk usage on /: 90%",
                                details=("Free: 2.0 GiB of 20.0 GiB",)))
        con, buf = _console()
        print_report(agg, con)
        out = buf.getvalue()
        assert "Summary" in out
        assert "System Check" in out
        assert "Disk usage on /: 90%" in out
        assert "Free: 2.0 GiB of 20.0 GiB" in out


class TestSummaryPanel:
    def test_counts_split_critical_from_errors(self):
        agg = ResultAggregator()
        for sev in (Severity.CRITICAL, Severity.ERROR, Severity.ERROR, Severity.WARNING, Severity.INFO):
            agg.add_result(_finding(sev))
        out = _render(build_summary_panel(agg))
        assert "1  Critical" in out
        assert "2  Errors" in out
        assert "1  Warnings" in out
        assert "1  Info" in out
        assert "Overall: Critical" in out
        assert "5 checks run" in out

    def test_all_info_overall(self):
        agg = ResultAggregator()
        agg.add_result(_finding(Severity.INFO))
        assert "Overall: Info" in _render(build_summary_panel(agg))

    def test_without_summary_no_score(self):
        agg = ResultAggregator()
        agg.add_result(_finding(Severity.INFO))
        assert "Health Score" not in _render(build_summary_panel(agg))

    def test_score_bar_and_resources(self):
        agg = ResultAggregator()
        agg.add_result(_finding(Severity.WARNING))
        summary = SystemSummary(
            score=75,
            resources=ResourceStatus(
                cpu_percent=12.0, memory_percent=41.0, swap_percent=0.0,
                load_average=(0.52, 0.4, 0.3), disks=[DiskUsage("/", "ext4", 63.0)],
            ),
            recommendations=[],
        )
        out = _render(build_summary_panel(agg, summary))
        assert "Health Score   75" in out
        assert "█" * 16 + "░" * 6 in out
        assert "Good" in out
        assert "CPU 12%  ·  Memory 41%  ·  Swap 0%  ·  Load 0.52 0.40 0.30" in out
        assert "/ (ext4)  63% used" in out
        assert "1  Warnings" in out


class TestRecommendationsInReport:
    def _agg(self) -> ResultAggregator:
        agg = ResultAggregator()
        agg.add_result(_finding(Severity.INFO))
        return agg

    def test_listed_after_findings(self):
        summary = SystemSummary(
            score=90, resources=ResourceStatus(),
            recommendations=["No DNS servers configured. Check network settings."],
        )
        con, buf = _console()
        print_report(self._agg(), con, summary)
        out = buf.getvalue()
        assert "Recommendations" in out
        assert "1. No DNS servers configured." in out
        assert out.index("System Check") < out.index("Recommendations")

    def test_no_panel_when_empty(self):
        con, buf = _console()
        print_report(self._agg(), con, SystemSummary(score=100, resources=ResourceStatus(), recommendations=[]))
        assert "Recommendations" not in buf.getvalue()


# ── Diagnosis panel ───────────────────────────────────────────────────────────

class TestDiagnosisPanel:
    def test_findings_then_numbered_fixes(self):
        d = Diagnosis(
            issue="Network Issues",
            findings=("DNS resolution failed for deb.debian.org",),
            fixes=(_fix("a"), _fix("b")),
        )
        out = _render(build_diagnosis_panel(d, category="network"))
        assert "Network Issues" in out
        assert "DNS resolution failed" in out
        assert "Available fixes" in out
        assert out.index("1. Fix a") < out.index("2. Fix b")

    def test_limit_summarises_rest(self):
        d = Diagnosis(issue="Custom", findings=(), fixes=tuple(_fix(str(i)) for i in range(12)))
        out = _render(build_diagnosis_panel(d, limit=10))
        assert "10. Fix 9" in out
        assert "Fix 10" not in out
        assert "… and 2 more" in out

    def test_invalid_fixes_never_listed(self):
        d = Diagnosis(
            issue="Disk Issues",
            findings=(),
            fixes=(
                _fix("wipe", title="Wipe Disk", commands=("mkfs.ext4 /dev/sda1",)),
                _fix("untitled", title=""),
                _fix("harmless", title="Harmless"),
            ),
        )
        out = _render(build_diagnosis_panel(d, category="disk"))
        assert "Wipe Disk" not in out
        assert "1. Harmless" in out
        assert "2." not in out

    def test_only_invalid_fixes_no_header(self):
        d = Diagnosis(issue="Custom", findings=("x",), fixes=(_fix("a", commands=()),))
        assert "Available fixes" not in _render(build_diagnosis_panel(d))

    def test_limit_counts_valid_fixes_only(self):
        fixes = (_fix("bad", commands=("dd if=/dev/zero of=/dev/sda",)),) + tuple(_fix(str(i)) for i in range(3))
        out = _render(build_diagnosis_panel(Diagnosis(issue="Custom", findings=(), fixes=fixes), limit=2))
        assert "1. Fix 0" in out
        assert "2. Fix 1" in out
        assert "… and 1 more" in out

    def test_no_fixes_no_header(self):
        d = Diagnosis(issue="Custom", findings=("nothing",), fixes=())
        assert "Available fixes" not in _render(build_diagnosis_panel(d))

    def test_markup_in_issue_is_escaped(self):
        d = Diagnosis(issue="File Permission Analysis: /tmp/[red]x", findings=(), fixes=())
        assert "/tmp/[red]x" in _render(build_diagnosis_panel(d))


class TestFixLine:
    def test_risk_root_and_reversible_badges(self):
        line = fix_line(_fix("a", requires_root=True, reversible=True,
                             reverse_commands=("false",), risk_level=RiskLevel.HIGH), 3)
        text = line.plain
        assert text.startswith("   3. Fix a")
        assert "High" in text
        assert "↶" in text

    def test_plain_fix(self):
        text = fix_line(_fix("a"), 1).plain
        assert "Low" in text
        assert "↶" not in text


class TestSuggestions:
    def test_limit(self):
        con, buf = _console()
        print_suggestions(con, [f"tip {i}" for i in range(10)], limit=5)
        out = buf.getvalue()
        assert "General troubleshooting suggestions:" in out
        assert "5. tip 4" in out
        assert "tip 5" not in out


# ── Theme ─────────────────────────────────────────────────────────────────────

class TestTheme:
    def test_every_style_constant_is_used_by_severity_map(self):
        styles = {value for name, value in vars(theme).items() if name.startswith("STYLE_")}
        assert styles == set(theme.SEVERITY_STYLES.values())

    def test_score_color_bands(self):
        assert theme.score_color(95) == theme.COLOR_PASS
        assert theme.score_color(80) == theme.COLOR_INFO
        assert theme.score_color(65) == theme.COLOR_WARNING
        assert theme.score_color(45) == theme.COLOR_ERROR
        assert theme.score_color(10) == theme.COLOR_CRITICAL
