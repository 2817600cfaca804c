"""
Tests for the structured diagnosis handlers.

Every probe is patched at module level, so nothing here touches the host.
"""

from io import StringIO
from unittest.mock import patch

import pytest
from rich.console import Console

from debdoctor.diagnose import STRUCTURED_CATEGORIES, diagnose
from debdoctor.diagnose.boot import diagnose_boot
from debdoctor.diagnose.disk import diagnose_disk, parent_disk
from debdoctor.diagnose.filesystem import diagnose_filesystem, remount_fix_id
from debdoctor.diagnose.logs import diagnose_logs, parse_journal_size, recurring_messages
from debdoctor.diagnose.models import Category
from debdoctor.diagnose.network import diagnose_network
from debdoctor.diagnose.packages import diagnose_packages
from debdoctor.diagnose.performance import diagnose_performance
from debdoctor.diagnose.services import diagnose_services, parse_flapping
from debdoctor.fixer.executor import FixExecutor
from debdoctor.fixer.validator import is_valid


# Probe return values for a healthy host, per handler module.
HEALTHY = {
    "debdoctor.diagnose.boot": dict(
        system_state="running", boot_errors=[], root_is_read_only=False,
    ),
    "debdoctor.diagnose.network": dict(
        network_service_active=True, down_interfaces=[], dns_resolves=True, has_default_route=True,
    ),
    "debdoctor.diagnose.disk": dict(
        filesystem_usage=[("/", 40.0)], kernel_io_errors=[], root_disk="/dev/sda",
    ),
    "debdoctor.diagnose.services": dict(
        failed_services=[], transitioning_services=[], disabled_critical_services=[],
        flapping_services=[], masked_services=[],
    ),
    "debdoctor.diagnose.packages": dict(
        broken_packages=[], dependency_problems=[], audit_problems=[], apt_processes=[],
        apt_cache_mb=10.0, upgradable_count=0, orphaned_count=0,
    ),
    "debdoctor.diagnose.performance": dict(
        cpu_percent=10.0, memory_percent=30.0, swap_usage=(1024, 0.0), load_average=(0.5, 4),
        top_processes=[],
    ),
    "debdoctor.diagnose.filesystem": dict(
        read_only_filesystems=[], high_inode_usage=[], failed_mount_units=[],
    ),
    "debdoctor.diagnose.logs": dict(
        journal_size_mb=100.0, recent_errors=[], core_dump_count=0, oversized_log_files=[],
    ),
    "debdoctor.diagnose.permissions": dict(
        home_mode=("/home/alex", 0o750), ssh_dir_mode=None, private_key_modes=[],
        world_accessible_sensitive_files=[], unexpected_system_dir_modes=[], admin_groups=None,
    ),
}


def _probes(module: str, **overrides):
    """patch.multiple over every probe in module, healthy unless overridden."""
    values = {**HEALTHY[module], **overrides}
    return patch.multiple(
        module,
        **{name: (lambda v: lambda *a, **k: v)(value) for name, value in values.items()},
    )


def _ids(diagnosis):
    return [f.id for f in diagnosis.fixes]


# ── Dispatch ──────────────────────────────────────────────────────────────────

class TestDispatch:
    @pytest.mark.parametrize("category", STRUCTURED_CATEGORIES)
    def test_healthy_host_reports_no_issues(self, category):
        module = f"debdoctor.diagnose.{category.value}"
        with _probes(module):
            d = diagnose(category)
        assert len(d.findings) == 1
        assert d.findings[0].startswith("No ") and d.findings[0].endswith("issues detected")
        assert len(d.fixes) == 1  # overview only

    def test_accepts_category_name(self):
        with _probes("debdoctor.diagnose.boot"):
            assert diagnose("boot").issue == "Boot Issues"

    @pytest.mark.parametrize("name", ["graphics", "audio", "hardware", "security"])
    def test_keyword_only_categories_rejected(self, name):
        with pytest.raises(ValueError):
            diagnose(name)

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            diagnose("printers")


# ── Boot ──────────────────────────────────────────────────────────────────────

class TestBoot:
    def test_degraded_read_only_root(self):
        with _probes("debdoctor.diagnose.boot", system_state="degraded",
                     boot_errors=["a", "b"], root_is_read_only=True):
            d = diagnose_boot()
        assert _ids(d) == ["show_failed_services", "view_boot_errors", "remount_rw", "boot_overview"]
        assert d.findings[0].startswith("System is in degraded state")
        remount = d.fixes[2]
        assert remount.reversible and remount.reverse_commands == ("mount -o remount,ro /",)

    def test_unusual_state_reported_without_fix(self):
        with _probes("debdoctor.diagnose.boot", system_state="maintenance"):
            d = diagnose_boot()
        assert d.findings == ("System state: maintenance",)
        assert _ids(d) == ["boot_overview"]

    def test_only_last_five_errors_listed(self):
        errors = [f"err {i}" for i in range(8)]
        with _probes("debdoctor.diagnose.boot", boot_errors=errors):
            d = diagnose_boot()
        assert d.findings[0].startswith("8 error entries")
        assert d.findings[1:] == tuple(f"  - err {i}" for i in range(3, 8))


# ── Network ───────────────────────────────────────────────────────────────────

class TestNetwork:
    def test_everything_wrong(self):
        with _probes("debdoctor.diagnose.network", network_service_active=False,
                     down_interfaces=["eth0", "wlan0"], dns_resolves=False,
                     has_default_route=False):
            d = diagnose_network()
        assert _ids(d) == [
            "restart_networking", "bring_up_eth0", "bring_up_wlan0",
            "flush_dns", "show_routing", "network_overview",
        ]
        assert "Interfaces down: eth0, wlan0" in d.findings

    def test_unknown_service_state_is_not_a_finding(self):
        with _probes("debdoctor.diagnose.network", network_service_active=None):
            d = diagnose_network()
        assert d.findings == ("No network issues detected",)

    def test_interface_fix_reverses_itself(self):
        with _probes("debdoctor.diagnose.network", down_interfaces=["eth0"]):
            fix = diagnose_network().fixes[0]
        assert fix.commands == ("ip link set eth0 up",)
        assert fix.reverse_commands == ("ip link set eth0 down",)


# ── Disk ──────────────────────────────────────────────────────────────────────

class TestDisk:
    def test_warning_and_critical_usage(self):
        with _probes("debdoctor.diagnose.disk", filesystem_usage=[("/", 90.0), ("/var", 97.0)]):
            d = diagnose_disk()
        assert d.findings == (
            "/ filesystem warning: 90% full",
            "/var filesystem critical: 97% full",
        )
        assert _ids(d) == [
            "clean_package_cache", "remove_orphaned_packages", "vacuum_journal",
            "find_large_files", "disk_overview",
        ]

    def test_io_errors_offer_smart_check(self):
        with _probes("debdoctor.diagnose.disk", kernel_io_errors=["blk_update_request: I/O error"]):
            d = diagnose_disk()
        assert d.findings[0] == "Disk I/O errors detected in kernel log:"
        smart = d.fixes[0]
        assert smart.id == "check_disk_health"
        assert smart.commands[0] == "smartctl -H /dev/sda"

    def test_io_errors_without_root_disk(self):
        with _probes("debdoctor.diagnose.disk", kernel_io_errors=["I/O error"], root_disk=None):
            d = diagnose_disk()
        assert _ids(d) == ["disk_overview"]

    @pytest.mark.parametrize("device,disk", [
        ("/dev/sda2", "/dev/sda"),
        ("/dev/vdb1", "/dev/vdb"),
        ("/dev/nvme0n1p3", "/dev/nvme0n1"),
        ("/dev/mmcblk0p1", "/dev/mmcblk0"),
        ("/dev/mapper/root", "/dev/mapper/root"),
    ])
    def test_parent_disk(self, device, disk):
        assert parent_disk(device) == disk


# ── Services ──────────────────────────────────────────────────────────────────

class TestServices:
    def test_failed_services(self):
        with _probes("debdoctor.diagnose.services", failed_services=["nginx", "cups"]):
            d = diagnose_services()
        assert d.findings == ("Failed services detected:", "  - nginx", "  - cups")
        restart, logs = d.fixes[0], d.fixes[1]
        assert restart.commands == ("systemctl restart nginx cups",)
        assert restart.reverse_commands == ("systemctl stop nginx cups",)
        assert logs.commands == (
            "journalctl -u nginx --since=-1h --no-pager",
            "journalctl -u cups --since=-1h --no-pager",
        )

    def test_enable_critical_services_reverse_per_step(self):
        with _probes("debdoctor.diagnose.services", disabled_critical_services=["ssh", "cron"]):
            fix = diagnose_services().fixes[0]
        assert fix.id == "enable_critical_services"
        assert fix.commands == (
            "systemctl enable ssh", "systemctl start ssh",
            "systemctl enable cron", "systemctl start cron",
        )
        assert fix.reverse_commands == (
            "systemctl disable ssh", "systemctl stop ssh",
            "systemctl disable cron", "systemctl stop cron",
        )
        assert is_valid(fix)

    def test_all_problems_ordering(self):
        with _probes("debdoctor.diagnose.services", failed_services=["a"],
                     transitioning_services=["b"], disabled_critical_services=["cron"],
                     flapping_services=["c"], masked_services=["d"]):
            d = diagnose_services()
        assert _ids(d) == [
            "restart_failed_services", "check_service_logs", "reset_error_services",
            "enable_critical_services", "analyze_flapping_services", "stop_flapping_services",
            "unmask_services", "service_overview",
        ]

    def test_parse_flapping(self):
        started = '{"UNIT": "foo.service", "MESSAGE": "Started Foo."}'
        lines = [started] * 6 + [
            '{"UNIT": "bar.service", "MESSAGE": "Started Bar."}',
            '{"UNIT": "foo.service", "MESSAGE": "Stopped Foo."}',
            '{"UNIT": "baz.timer", "MESSAGE": "Started Baz."}',
            "not json",
        ]
        assert parse_flapping("\n".join(lines)) == ["foo"]

    def test_parse_flapping_threshold_is_exclusive(self):
        started = '{"UNIT": "foo.service", "MESSAGE": "Started Foo."}'
        assert parse_flapping("\n".join([started] * 5)) == []


# ── Packages ──────────────────────────────────────────────────────────────────

class TestPackages:
    def test_broken_packages_listing_capped(self):
        broken = [f"pkg{i}" for i in range(7)]
        with _probes("debdoctor.diagnose.packages", broken_packages=broken):
            d = diagnose_packages()
        assert d.findings[0] == "Broken packages detected: 7"
        assert d.findings[-1] == "  ... and 2 more"
        assert _ids(d) == ["fix_broken_packages", "dpkg_configure_all", "package_system_check"]

    def test_lock_held_offers_critical_fix(self):
        with _probes("debdoctor.diagnose.packages", apt_processes=["apt-get"]):
            d = diagnose_packages()
        assert d.findings == ("APT is currently locked (running: apt-get)",)
        lock = d.fixes[1]
        assert lock.id == "remove_apt_lock"
        assert lock.risk_level.label == "Critical"
        assert is_valid(lock)

    def test_thresholds(self):
        with _probes("debdoctor.diagnose.packages", apt_cache_mb=1500.0,
                     upgradable_count=21, orphaned_count=11):
            d = diagnose_packages()
        assert _ids(d) == [
            "clean_package_cache", "upgrade_packages", "list_upgradeable",
            "remove_orphaned_packages", "list_orphaned", "package_system_check",
        ]

    def test_at_threshold_is_quiet(self):
        with _probes("debdoctor.diagnose.packages", apt_cache_mb=1000.0,
                     upgradable_count=20, orphaned_count=10):
            d = diagnose_packages()
        assert _ids(d) == ["package_system_check"]


# ── Performance ───────────────────────────────────────────────────────────────

class TestPerformance:
    def test_high_memory_without_swap(self):
        with _probes("debdoctor.diagnose.performance", memory_percent=92.0,
                     swap_usage=(0, 0.0), top_processes=["firefox: 30.0% MEM"]):
            d = diagnose_performance()
        assert d.findings[0] == "High memory usage: 92.0%"
        assert "No swap space configured" in d.findings
        assert _ids(d) == ["clear_caches", "create_swap_file", "performance_overview"]

    def test_high_load(self):
        with _probes("debdoctor.diagnose.performance", load_average=(9.0, 4)):
            d = diagnose_performance()
        assert d.findings == ("High system load: 9.00 (cores: 4)",)
        assert _ids(d) == ["view_processes", "performance_overview"]

    def test_high_swap_offers_reversible_clear(self):
        with _probes("debdoctor.diagnose.performance", swap_usage=(2048, 75.0)):
            d = diagnose_performance()
        fix = d.fixes[0]
        assert fix.id == "clear_swap"
        assert fix.reverse_commands == ("swapon -a", "")

    def test_unavailable_probes_are_skipped(self):
        with _probes("debdoctor.diagnose.performance", cpu_percent=None,
                     memory_percent=None, swap_usage=None, load_average=None):
            d = diagnose_performance()
        assert d.findings == ("No performance issues detected",)


# ── Filesystem ────────────────────────────────────────────────────────────────

class TestFilesystem:
    def test_read_only_mounts(self):
        with _probes("debdoctor.diagnose.filesystem", read_only_filesystems=["/", "/srv/data"]):
            d = diagnose_filesystem()
        assert _ids(d) == [
            "remount_rw", "remount_rw_srv_data", "check_filesystem_errors", "filesystem_overview",
        ]
        assert d.fixes[0].risk_level.label == "High"
        assert d.fixes[1].risk_level.label == "Medium"

    def test_mounts_sharing_a_slug_both_get_fixes(self):
        with _probes("debdoctor.diagnose.filesystem", read_only_filesystems=["/srv-data", "/srv_data"]):
            d = diagnose_filesystem()
        assert _ids(d) == [
            "remount_rw_srv_data", "remount_rw_srv_data_1",
            "check_filesystem_errors", "filesystem_overview",
        ]
        assert d.fixes[1].commands == ("mount -o remount,rw /srv_data",)

    def test_remount_fix_id_skips_taken(self):
        assert remount_fix_id("/srv_data", 1, {"remount_rw_srv_data"}) == "remount_rw_srv_data_1"
        assert remount_fix_id("/srv_data", 1, {"remount_rw_srv_data", "remount_rw_srv_data_1"}) \
            == "remount_rw_srv_data_2"

    def test_whitespace_mount_gets_no_remount_fix(self):
        with _probes("debdoctor.diagnose.filesystem", read_only_filesystems=["/media/usb stick"]):
            d = diagnose_filesystem()
        assert "  - /media/usb stick" in d.findings
        assert _ids(d) == ["check_filesystem_errors", "filesystem_overview"]

    def test_inodes_and_failed_mounts(self):
        with _probes("debdoctor.diagnose.filesystem", high_inode_usage=[("/var", 96.4)],
                     failed_mount_units=["srv-data"]):
            d = diagnose_filesystem()
        assert "  - /var: 96% of inodes used" in d.findings
        assert "  - srv-data.mount failed" in d.findings
        assert _ids(d) == [
            "clean_temp_files", "show_inode_usage", "reload_systemd_mounts",
            "check_fstab", "filesystem_overview",
        ]

    @pytest.mark.parametrize("mountpoint,fix_id", [
        ("/", "remount_rw"),
        ("/home", "remount_rw_home"),
        ("/srv/data-1", "remount_rw_srv_data_1"),
    ])
    def test_remount_fix_id(self, mountpoint, fix_id):
        assert remount_fix_id(mountpoint) == fix_id


# ── Logs ──────────────────────────────────────────────────────────────────────

class TestLogs:
    def test_large_journal(self):
        with _probes("debdoctor.diagnose.logs", journal_size_mb=2048.0):
            d = diagnose_logs()
        assert d.findings == ("Large systemd journal: 2048 MB",)
        assert _ids(d) == ["vacuum_journal_time", "vacuum_journal_size", "log_overview"]

    def test_recurring_errors(self):
        errors = ["disk full"] * 4 + ["other"]
        with _probes("debdoctor.diagnose.logs", recent_errors=errors):
            d = diagnose_logs()
        assert "  - (4x) disk full" in d.findings
        assert _ids(d) == ["analyze_errors", "log_overview"]

    def test_core_dumps_and_big_logs(self):
        with _probes("debdoctor.diagnose.logs", core_dump_count=1,
                     oversized_log_files=[("/var/log/syslog", 512.0)]):
            d = diagnose_logs()
        assert "Found 1 core dump on system" in d.findings
        assert "  - /var/log/syslog is 512 MB" in d.findings
        assert _ids(d) == [
            "list_core_dumps", "clean_core_dumps", "force_logrotate",
            "check_logrotate_config", "log_overview",
        ]

    @pytest.mark.parametrize("text,mb", [
        ("Archived and active journals take up 1.5G in the file system.", 1536.0),
        ("Archived and active journals take up 56.0M in the file system.", 56.0),
        ("Journals take up 512K on disk.", 0.5),
        ("No journal files were found.", 0.0),
    ])
    def test_parse_journal_size(self, text, mb):
        assert parse_journal_size(text) == pytest.approx(mb)

    def test_recurring_messages_most_frequent_first(self):
        lines = ["a"] * 3 + ["b"] * 5 + ["c"] * 2
        assert recurring_messages(lines) == [("b", 5), ("a", 3)]


# ── Catalog-wide properties ───────────────────────────────────────────────────

class TestCatalogProperties:
    WORST = {
        "debdoctor.diagnose.boot": dict(system_state="degraded", boot_errors=["x"], root_is_read_only=True),
        "debdoctor.diagnose.network": dict(
            network_service_active=False, down_interfaces=["eth0"], dns_resolves=False,
            has_default_route=False,
        ),
        "debdoctor.diagnose.disk": dict(filesystem_usage=[("/", 99.0)], kernel_io_errors=["I/O error"]),
        "debdoctor.diagnose.services": dict(
            failed_services=["a"], transitioning_services=["b"], disabled_critical_services=["ssh"],
            flapping_services=["c"], masked_services=["d"],
        ),
        "debdoctor.diagnose.packages": dict(
            broken_packages=["p"], dependency_problems=["d"], audit_problems=["a"],
            apt_processes=["dpkg"], apt_cache_mb=5000.0, upgradable_count=99, orphaned_count=99,
        ),
        "debdoctor.diagnose.performance": dict(
            cpu_percent=99.0, memory_percent=99.0, swap_usage=(0, 0.0), load_average=(50.0, 2),
        ),
        "debdoctor.diagnose.filesystem": dict(
            read_only_filesystems=["/", "/home"], high_inode_usage=[("/", 99.0)],
            failed_mount_units=["x"],
        ),
        "debdoctor.diagnose.logs": dict(
            journal_size_mb=9999.0, recent_errors=["e"] * 60, core_dump_count=3,
            oversized_log_files=[("/var/log/big", 300.0)],
        ),
        "debdoctor.diagnose.permissions": dict(
            home_mode=("/home/alex", 0o777), ssh_dir_mode=("/home/alex/.ssh", 0o755),
            private_key_modes=[("/home/alex/.ssh/id_rsa", 0o644)],
            world_accessible_sensitive_files=[("/etc/shadow", 0o644)],
            unexpected_system_dir_modes=[("/etc", 0o777, 0o755)], admin_groups=[],
        ),
    }

    @pytest.mark.parametrize("module", list(WORST))
    def test_ids_unique_and_every_fix_valid(self, module):
        category = Category(module.rsplit(".", 1)[1])
        with _probes(module, **self.WORST[module]):
            d = diagnose(category)
        ids = _ids(d)
        assert len(ids) == len(set(ids))
        assert all(is_valid(f) for f in d.fixes)

    @pytest.mark.parametrize("module", list(WORST))
    def test_commands_have_no_shell_syntax(self, module):
        category = Category(module.rsplit(".", 1)[1])
        with _probes(module, **self.WORST[module]):
            d = diagnose(category)
        for fix in d.fixes:
            for cmd in (*fix.commands, *fix.reverse_commands):
                assert not any(ch in cmd for ch in "|;&<>`$"), cmd

    def test_executor_splits_catalog_commands_cleanly(self):
        calls = []
        ex = FixExecutor(
            Console(file=StringIO(), no_color=True), is_root=True, non_interactive=True,
            runner=lambda argv: calls.append(argv) or 0,
        )
        with _probes("debdoctor.diagnose.network", down_interfaces=["eth0"]):
            fix = diagnose_network().fixes[0]
        outcome = ex.execute(fix)
        assert outcome.succeeded
        assert calls == [["ip", "link", "set", "eth0", "up"]]
