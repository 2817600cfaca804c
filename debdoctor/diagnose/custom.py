"""
Free-text issue diagnosis.

The operator's description is lower-cased, trimmed and split on whitespace.
A keyword category is detected when any of its trigger substrings occurs in
any token. Category blocks are emitted in KEYWORD_TRIGGERS order, each at
most once, and the two universal blocks (general troubleshooting, then
information gathering) are always appended.
"""

from __future__ import annotations

from pathlib import Path

from debdoctor.diagnose.models import Category, Diagnosis, DiagnosisBuilder
from debdoctor.diagnose.probes import has_whitespace
from debdoctor.fixer.models import Fix, RiskLevel

ISSUE_TITLE = "Custom Issue Diagnosis"

# Order matters: it is the order category blocks appear in the diagnosis.
KEYWORD_TRIGGERS: dict[Category, tuple[str, ...]] = {
    Category.BOOT: ("boot", "startup", "grub", "start", "starting", "boots", "booting"),
    Category.NETWORK: ("network", "internet", "wifi", "ethernet", "connection", "dns", "ip", "ping", "connect"),
    Category.PERFORMANCE: ("slow", "fast", "performance", "lag", "freeze", "hang", "cpu", "memory", "ram"),
    Category.DISK: ("disk", "storage", "space", "full", "hdd", "ssd", "filesystem", "mount"),
    Category.SERVICES: ("service", "daemon", "systemd", "process", "running", "stopped"),
    Category.GRAPHICS: ("graphics", "display", "screen", "resolution", "x11", "wayland", "nvidia", "amd"),
    Category.AUDIO: ("audio", "sound", "speaker", "microphone", "alsa", "pulseaudio", "pipewire"),
    Category.PACKAGES: ("package", "apt", "install", "software", "application", "program"),
    Category.PERMISSIONS: ("permission", "access", "denied", "sudo", "root", "user", "group"),
    Category.LOGS: ("log", "error", "warning", "journal", "syslog", "dmesg"),
    Category.HARDWARE: ("hardware", "device", "driver", "usb", "bluetooth", "keyboard", "mouse"),
    Category.SECURITY: ("security", "firewall", "ssh", "login", "password", "authentication"),
}

TROUBLESHOOTING_SUGGESTIONS: tuple[str, ...] = (
    "Try restarting the specific service or application that's causing issues",
    "Check system logs for error messages around the time the issue started",
    "Verify that you have sufficient disk space and memory",
    "Test in a different user account to rule out user-specific configuration issues",
    "Check if the issue persists after a system reboot",
    "Verify network connectivity if the issue involves internet access",
    "Look for recent system updates or changes that might have caused the issue",
    "Check for hardware issues by examining the kernel log (journalctl -k)",
    "Try running the problematic command with elevated privileges (sudo)",
    "Search online for error messages you encounter",
)


def extract_keywords(text: str) -> list[Category]:
    """Return detected categories in KEYWORD_TRIGGERS order, no repeats."""
    tokens = text.lower().split()
    return [
        category
        for category, triggers in KEYWORD_TRIGGERS.items()
        if any(trigger in token for token in tokens for trigger in triggers)
    ]


def diagnose_issue(text: str | None) -> Diagnosis:
    """Build a Diagnosis for a free-text problem description. Never empty of fixes."""
    b = DiagnosisBuilder(ISSUE_TITLE)
    description = (text or "").strip().lower()

    if not description:
        b.finding("No issue description provided")
        return b.build(overview=universal_fixes())

    b.finding(f"Analyzing issue: {(text or '').strip()}")
    keywords = extract_keywords(description)
    if keywords:
        b.finding(f"Detected keywords: {', '.join(k.value for k in keywords)}")
        b.finding("Providing targeted troubleshooting based on detected keywords")
    else:
        b.finding("No specific keywords detected - providing general troubleshooting steps")

    for category in keywords:
        b.add_fix(category_fix(category))

    return b.build(overview=universal_fixes())


def universal_fixes() -> list[Fix]:
    return [*general_troubleshooting_fixes(), *information_gathering_fixes()]


# ── Category blocks ───────────────────────────────────────────────────────────

def category_fix(category: Category) -> Fix:
    return _CATEGORY_BUILDERS[category]()


def _boot_fix() -> Fix:
    return Fix(
        id="check_boot_issues",
        title="Check Boot Issues",
        description="Examine the boot process, failed units and the /boot mount",
        commands=(
            "systemctl --failed --no-pager",
            "journalctl -b -p err --no-pager",
            "lsblk",
            "findmnt /boot",
        ),
    )


def _network_fix() -> Fix:
    return Fix(
        id="diagnose_network",
        title="Diagnose Network Issues",
        description="Check network configuration and connectivity",
        commands=(
            "ip addr show",
            "ip route show",
            "ping -c 3 8.8.8.8",
            "systemctl status networking --no-pager",
            "cat /etc/resolv.conf",
        ),
    )


def _performance_fix() -> Fix:
    return Fix(
        id="check_performance",
        title="Check System Performance",
        description="Analyze CPU, memory, and system load",
        commands=(
            "top -b -n 1",
            "free -h",
            "uptime",
            "vmstat 1 3",
            "ps aux --sort=-%cpu",
        ),
    )


def _disk_fix() -> Fix:
    return Fix(
        id="check_disk_space",
        title="Check Disk Usage",
        description="Analyze disk space and filesystem health",
        commands=(
            "df -h",
            "df -i",
            "lsblk",
            "findmnt",
            "du -sh /var /tmp /home",
        ),
    )


def _services_fix() -> Fix:
    return Fix(
        id="check_services",
        title="Check System Services",
        description="Examine systemd services and processes",
        commands=(
            "systemctl --failed --no-pager",
            "systemctl list-units --state=failed --no-pager",
            "ps aux",
            "systemctl status --no-pager",
        ),
    )


def _graphics_fix() -> Fix:
    return Fix(
        id="check_graphics",
        title="Check Graphics Configuration",
        description="Examine display hardware, loaded drivers and the session type",
        commands=(
            "lspci -k",
            "lsmod",
            "xrandr",
            "loginctl",
        ),
    )


def _audio_fix() -> Fix:
    return Fix(
        id="check_audio",
        title="Check Audio Configuration",
        description="Examine audio devices and the sound server",
        commands=(
            "aplay -l",
            "amixer",
            "pactl info",
            "systemctl --user status pipewire pulseaudio --no-pager",
        ),
    )


def _packages_fix() -> Fix:
    return Fix(
        id="check_packages",
        title="Check Package System",
        description="Examine APT package manager and installations",
        commands=(
            "apt list --upgradable",
            "apt-get check",
            "dpkg --audit",
            "apt-cache policy",
        ),
    )


def _permissions_fix() -> Fix:
    home = str(Path.home())
    target = home if not has_whitespace(home) else "/home"
    return Fix(
        id="check_permissions",
        title="Check File Permissions",
        description="Examine user permissions and access rights",
        commands=(
            "id",
            "groups",
            f"ls -la {target}",
            "sudo -n -l",
            f"getfacl {target}",
        ),
    )


def _logs_fix() -> Fix:
    return Fix(
        id="check_log_errors",
        title="Review Recent Log Errors",
        description="Show error-priority journal entries and kernel messages for this boot",
        commands=(
            "journalctl -b -p err --no-pager",
            "journalctl -k -b -p warning --no-pager",
            "journalctl --disk-usage",
            "ls -lhS /var/log",
        ),
    )


def _hardware_fix() -> Fix:
    return Fix(
        id="check_hardware",
        title="Check Hardware Status",
        description="Examine hardware devices and drivers",
        commands=(
            "lspci",
            "lsusb",
            "lsmod",
            "journalctl -k -b -p err --no-pager",
            "lshw -short",
        ),
    )


def _security_fix() -> Fix:
    return Fix(
        id="check_security",
        title="Check Security Status",
        description="List listening sockets, recent logins and SSH daemon activity",
        commands=(
            "ss -tuln",
            "last -n 10",
            "systemctl status ssh --no-pager",
            "journalctl -u ssh --since=-24h --no-pager",
        ),
    )


_CATEGORY_BUILDERS = {
    Category.BOOT: _boot_fix,
    Category.NETWORK: _network_fix,
    Category.PERFORMANCE: _performance_fix,
    Category.DISK: _disk_fix,
    Category.SERVICES: _services_fix,
    Category.GRAPHICS: _graphics_fix,
    Category.AUDIO: _audio_fix,
    Category.PACKAGES: _packages_fix,
    Category.PERMISSIONS: _permissions_fix,
    Category.LOGS: _logs_fix,
    Category.HARDWARE: _hardware_fix,
    Category.SECURITY: _security_fix,
}


# ── Universal blocks ──────────────────────────────────────────────────────────

def general_troubleshooting_fixes() -> list[Fix]:
    return [
        Fix(
            id="system_overview",
            title="System Overview",
            description="Get a comprehensive overview of system status",
            commands=("uname -a", "lsb_release -a", "uptime", "whoami", "pwd"),
        ),
        Fix(
            id="check_recent_changes",
            title="Check Recent Changes",
            description="Look for recent logins, warnings and package activity that might have caused issues",
            commands=(
                "last -n 10",
                "journalctl --since=-1h -p warning --no-pager",
                "ls -lt /var/log/apt",
            ),
        ),
        Fix(
            id="basic_connectivity_test",
            title="Basic Connectivity Test",
            description="Test basic network and system connectivity",
            commands=(
                "ping -c 3 127.0.0.1",
                "ping -c 3 8.8.8.8",
                "curl -I http://example.com",
                "getent hosts debian.org",
            ),
        ),
        Fix(
            id="restart_common_services",
            title="Restart Common Services",
            description="Restart commonly problematic services",
            commands=(
                "systemctl restart networking",
                "systemctl restart systemd-resolved",
                "systemctl restart dbus",
            ),
            requires_root=True,
            risk_level=RiskLevel.MEDIUM,
        ),
    ]


def information_gathering_fixes() -> list[Fix]:
    return [
        Fix(
            id="gather_system_info",
            title="Gather Detailed System Information",
            description="Collect comprehensive system information for troubleshooting",
            commands=("cat /proc/version", "lscpu", "free -h", "lsblk"),
        ),
        Fix(
            id="check_system_logs",
            title="Check System Logs",
            description="Examine system logs for error messages and warnings",
            commands=(
                "journalctl -p err --since=-24h --no-pager",
                "journalctl -k -b -p err --no-pager",
                "systemctl --failed --no-pager",
            ),
        ),
    ]
