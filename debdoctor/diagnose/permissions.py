"""
Permission diagnosis.

diagnose_permissions()          — the operator's home and SSH material, sensitive
                                  system files, core system directories, admin groups.
diagnose_path_permissions(path) — analysis of one file or directory.

Every chmod fix records the original mode so it can be restored exactly.
Paths containing whitespace are reported but get no fixes, because fix
commands are split on whitespace.
"""

from __future__ import annotations

import grp
import os
import pwd
import stat
from pathlib import Path

from debdoctor.diagnose.models import Diagnosis, DiagnosisBuilder
from debdoctor.diagnose.probes import has_whitespace, probe
from debdoctor.fixer.models import Fix, RiskLevel

SSH_KEY_NAMES = ("id_rsa", "id_dsa", "id_ecdsa", "id_ed25519", "id_ecdsa_sk", "id_ed25519_sk")
SENSITIVE_FILES = ("/etc/shadow", "/etc/gshadow", "/etc/sudoers")
SYSTEM_DIRS = {"/etc": 0o755, "/usr/bin": 0o755, "/usr/sbin": 0o755, "/var/log": 0o755}
ADMIN_GROUPS = ("sudo", "admin", "wheel")

Mode = tuple[str, int]


def _perm(path: str | Path) -> int:
    return stat.S_IMODE(os.stat(path).st_mode)


def _chmod_fix(fix_id: str, title: str, description: str, targets: list[Mode],
               new_mode: str, requires_root: bool,
               risk_level: RiskLevel = RiskLevel.LOW) -> Fix:
    return Fix(
        id=fix_id,
        title=title,
        description=description,
        commands=tuple(f"chmod {new_mode} {path}" for path, _ in targets),
        requires_root=requires_root,
        reversible=True,
        reverse_commands=tuple(f"chmod {mode:o} {path}" for path, mode in targets),
        risk_level=risk_level,
    )


# ── Probes ────────────────────────────────────────────────────────────────────

@probe(lambda: None)
def home_mode() -> Mode | None:
    home = str(Path.home())
    return home, _perm(home)


@probe(lambda: None)
def ssh_dir_mode() -> Mode | None:
    ssh = Path.home() / ".ssh"
    if not ssh.is_dir():
        return None
    return str(ssh), _perm(ssh)


@probe(list)
def private_key_modes() -> list[Mode]:
    ssh = Path.home() / ".ssh"
    return [
        (str(ssh / name), _perm(ssh / name))
        for name in SSH_KEY_NAMES
        if (ssh / name).is_file()
    ]


@probe(list)
def world_accessible_sensitive_files() -> list[Mode]:
    found = []
    for path in SENSITIVE_FILES:
        if os.path.exists(path):
            mode = _perm(path)
            if mode & 0o007:
                found.append((path, mode))
    return found


@probe(list)
def unexpected_system_dir_modes() -> list[tuple[str, int, int]]:
    """(path, actual, expected) for core directories whose mode differs."""
    found = []
    for path, expected in SYSTEM_DIRS.items():
        if os.path.isdir(path):
            mode = _perm(path)
            if mode != expected:
                found.append((path, mode, expected))
    return found


@probe(lambda: None)
def admin_groups() -> list[str] | None:
    """Admin groups the current user belongs to; None for root."""
    if os.geteuid() == 0:
        return None
    names = {grp.getgrgid(gid).gr_name for gid in os.getgroups()}
    return [g for g in ADMIN_GROUPS if g in names]


# ── Handler ───────────────────────────────────────────────────────────────────

def diagnose_permissions() -> Diagnosis:
    b = DiagnosisBuilder("Permission Issues")

    home = home_mode()
    if home and home[1] & 0o027:
        path, mode = home
        b.finding(f"Home directory has overly permissive permissions: {mode:04o}")
        if not has_whitespace(path):
            b.add_fix(_chmod_fix(
                "fix_home_permissions", "Restrict Home Directory",
                f"Sets {path} to 0750 so other users cannot read it",
                [home], "750", requires_root=False,
            ))

    ssh = ssh_dir_mode()
    if ssh and ssh[1] != 0o700:
        path, mode = ssh
        b.finding(f".ssh directory has incorrect permissions: {mode:04o} (should be 0700)")
        if not has_whitespace(path):
            b.add_fix(_chmod_fix(
                "fix_ssh_dir_permissions", "Fix .ssh Directory Permissions",
                f"Sets {path} to 0700 as OpenSSH expects",
                [ssh], "700", requires_root=False,
            ))

    keys = [(p, m) for p, m in private_key_modes() if m & 0o077]
    if keys:
        for path, mode in keys:
            b.finding(f"SSH private key {path} has insecure permissions: {mode:04o} (should be 0600)")
        fixable = [k for k in keys if not has_whitespace(k[0])]
        if fixable:
            b.add_fix(_chmod_fix(
                "fix_ssh_key_permissions", "Fix SSH Key Permissions",
                "Makes private keys readable by their owner only",
                fixable, "600", requires_root=False,
            ))

    sensitive = world_accessible_sensitive_files()
    if sensitive:
        for path, mode in sensitive:
            b.finding(f"{path} is accessible by other users: {mode:04o}")
        b.add_fix(_chmod_fix(
            "fix_sensitive_file_permissions", "Restrict Sensitive System Files",
            "Removes all permissions for other users from credential files",
            sensitive, "o-rwx", requires_root=True, risk_level=RiskLevel.MEDIUM,
        ))

    dirs = unexpected_system_dir_modes()
    if dirs:
        for path, mode, expected in dirs:
            b.finding(f"{path} has unexpected permissions: {mode:04o} (expected {expected:04o})")
        b.add_fix(_chmod_fix(
            "fix_system_dir_permissions", "Restore System Directory Permissions",
            "Resets core system directories to 0755",
            [(path, mode) for path, mode, _ in dirs], "755",
            requires_root=True, risk_level=RiskLevel.HIGH,
        ))

    groups = admin_groups()
    if groups is not None and not groups:
        b.finding("Current user is not in any administrative group (sudo, admin, wheel)")

    home_path = str(Path.home())
    overview_cmds = ["id"]
    if not has_whitespace(home_path):
        overview_cmds.append(f"ls -la {home_path}")
    overview_cmds.append("sudo -n -l")
    return b.build(
        overview=[Fix(
            id="permission_overview",
            title="Permission Overview",
            description="Shows your identity, groups, home directory listing and sudo rights",
            commands=tuple(overview_cmds),
        )],
        none_found="No permission issues detected",
    )


# ── Single path ───────────────────────────────────────────────────────────────

def _file_type(mode: int) -> str:
    if stat.S_ISDIR(mode):
        return "directory"
    if stat.S_ISREG(mode):
        return "regular file"
    if stat.S_ISLNK(mode):
        return "symbolic link"
    if stat.S_ISCHR(mode) or stat.S_ISBLK(mode):
        return "device"
    if stat.S_ISFIFO(mode):
        return "named pipe"
    if stat.S_ISSOCK(mode):
        return "socket"
    return "other"


def _user_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return f"UID:{uid}"


def _group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return f"GID:{gid}"


def diagnose_path_permissions(path: str) -> Diagnosis:
    """Explain who can do what with path and offer targeted chmod fixes."""
    path = os.path.abspath(os.path.expanduser(path))
    b = DiagnosisBuilder(f"File Permission Analysis: {path}")
    fixable = not has_whitespace(path)

    try:
        st = os.stat(path)
    except FileNotFoundError:
        b.finding(f"Path does not exist: {path}")
        return b.build()
    except PermissionError:
        b.finding(f"Permission denied accessing: {path}")
        if fixable:
            parent = os.path.dirname(path)
            b.add_fix(Fix(
                id="fix_access_permission",
                title="Allow Traversal of Parent Directory",
                description=f"Lets everyone traverse {parent} so {path} can be reached",
                commands=(f"chmod o+x {parent}",),
                requires_root=True,
                reversible=True,
                reverse_commands=(f"chmod o-x {parent}",),
                risk_level=RiskLevel.MEDIUM,
            ))
        return b.build()
    except OSError as e:
        b.finding(f"Error accessing path: {e}")
        return b.build()

    mode = stat.S_IMODE(st.st_mode)
    is_dir = stat.S_ISDIR(st.st_mode)
    owned = st.st_uid == os.geteuid()

    b.finding(f"Path: {path}")
    b.finding(f"Type: {_file_type(st.st_mode)}")
    b.finding(f"Permissions: {stat.filemode(st.st_mode)} ({mode:04o})")
    b.finding(f"Owner: {_user_name(st.st_uid)} (UID: {st.st_uid})")
    b.finding(f"Group: {_group_name(st.st_gid)} (GID: {st.st_gid})")
    if not fixable:
        b.finding("Path contains whitespace: fixes cannot be offered")

    def add(fix: Fix) -> None:
        if fixable:
            b.add_fix(fix)

    if is_dir:
        if not os.access(path, os.X_OK):
            b.finding("Directory cannot be entered by the current user")
            add(Fix(
                id="fix_dir_access",
                title="Make Directory Accessible",
                description=f"Adds the execute (traverse) bit to {path}",
                commands=(f"chmod +x {path}",),
                requires_root=not owned,
                reversible=True,
                reverse_commands=(f"chmod {mode:o} {path}",),
            ))
        if not os.access(path, os.W_OK):
            b.finding("Directory is not writable by the current user")
            add(Fix(
                id="fix_dir_readonly",
                title="Make Directory Writable by Owner",
                description=f"Adds the owner write bit to {path}",
                commands=(f"chmod u+w {path}",),
                requires_root=not owned,
                reversible=True,
                reverse_commands=(f"chmod {mode:o} {path}",),
            ))
    elif not os.access(path, os.R_OK):
        b.finding("File is not readable by the current user")
        add(Fix(
            id="fix_file_readable",
            title="Make File Readable",
            description=f"Adds read permission to {path}",
            commands=(f"chmod +r {path}",),
            requires_root=not owned,
            reversible=True,
            reverse_commands=(f"chmod {mode:o} {path}",),
        ))

    sticky_dir = is_dir and mode & stat.S_ISVTX
    if mode & stat.S_IWOTH and not sticky_dir:
        b.finding("World-writable: any user can modify it")
        add(Fix(
            id="fix_world_writable",
            title="Remove World-Write Permission",
            description=f"Removes write permission for other users from {path}",
            commands=(f"chmod o-w {path}",),
            requires_root=not owned,
            reversible=True,
            reverse_commands=(f"chmod o+w {path}",),
            risk_level=RiskLevel.MEDIUM,
        ))

    if not is_dir and mode & stat.S_ISUID:
        b.finding(f"setuid bit set: runs as {_user_name(st.st_uid)} for any caller")
        add(Fix(
            id="remove_setuid",
            title="Remove setuid Bit",
            description=f"Clears the setuid bit on {path}",
            commands=(f"chmod u-s {path}",),
            requires_root=True,
            reversible=True,
            reverse_commands=(f"chmod u+s {path}",),
            risk_level=RiskLevel.HIGH,
        ))

    overview = []
    if fixable:
        overview.append(Fix(
            id="path_overview",
            title="Show Path Details",
            description="Shows the full stat record and listing for the path",
            commands=(f"stat {path}", f"ls -ld {path}"),
        ))
    return b.build(overview=overview)
