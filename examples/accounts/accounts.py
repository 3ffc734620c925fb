"""
Account Management Example - declare users, their groups and SSH access.

Run from this directory:
    accord plan
    sudo accord apply --dry-run
    sudo accord apply

IMPORTANT: Converging accounts requires root privileges.
"""

from accord.models import AccountSpec

# Regular login account with a dedicated group and two authorized keys
deploy = AccountSpec(
    title="deploy",
    comment="Deployment user",
    groups=["docker"],
    ssh_keys=[
        "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIExampleKeyMaterial deploy@ci",
        "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQExample ops@laptop",
    ],
)

# System account living outside /home, sharing the staff group
backup = AccountSpec(
    title="backup",
    username="backupsvc",
    shell="/usr/sbin/nologin",
    home_dir="/var/lib/backupsvc",
    home_dir_perms="0700",
    system=True,
    uid=950,
    create_group=False,
    gid="staff",
)

# Former administrator: remove the account, its home and its group
old_admin = AccountSpec(title="old_admin", ensure="absent")
