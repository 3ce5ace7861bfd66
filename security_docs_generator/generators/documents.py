from faker import Faker
from uuid import uuid4
from datetime import datetime, timedelta, timezone
from typing import Optional
import random

fake = Faker()

# Event categories with field generators
EVENT_FIELDS = {
    "authentication": {
        "action": lambda: random.choice(["logon", "logoff", "logon-failed"]),
        "outcome": lambda: random.choice(["success", "failure"]),
        "type": lambda: "start",
    },
    "process": {
        "action": lambda: random.choice(["exec", "fork", "end"]),
        "outcome": lambda: "success",
        "type": lambda: random.choice(["start", "end"]),
    },
    "network": {
        "action": lambda: random.choice(["connection_attempted", "connection_accepted"]),
        "outcome": lambda: random.choice(["success", "failure"]),
        "type": lambda: "connection",
    },
    "file": {
        "action": lambda: random.choice(["creation", "modification", "deletion"]),
        "outcome": lambda: "success",
        "type": lambda: random.choice(["creation", "change", "deletion"]),
    },
}

PROCESS_NAMES = ["powershell.exe", "cmd.exe", "bash", "sshd", "svchost.exe", "python3"]
OS_TYPES = ["windows", "linux", "macos"]
SEVERITIES = ["low", "medium", "high", "critical"]
RULE_NAMES = [
    "Suspicious PowerShell Execution",
    "Multiple Failed Logons",
    "Unusual Network Connection",
    "Credential Dumping Attempt",
    "Ransomware File Extension Change",
]

DEFAULT_SPACE = "default"


def get_alert_index(space: str = DEFAULT_SPACE) -> str:
    return f".alerts-security.alerts-{space}"


def random_timestamp(offset_hours: Optional[int] = None) -> str:
    """Random time in the last 24 hours, shifted back by offset_hours."""
    now = datetime.now(timezone.utc) - timedelta(hours=offset_hours or 0)
    return (now - timedelta(seconds=random.randint(0, 24 * 3600))).isoformat()


def create_user_pool(size: int) -> list:
    return [fake.user_name() for _ in range(size)]


def create_host_pool(size: int) -> list:
    return [fake.hostname() for _ in range(size)]


def generate_event(
    user_name: Optional[str] = None,
    host_name: Optional[str] = None,
    offset_hours: Optional[int] = None,
) -> dict:
    category = random.choice(list(EVENT_FIELDS.keys()))
    fields = EVENT_FIELDS[category]
    user_name = user_name or fake.user_name()
    host_name = host_name or fake.hostname()

    return {
        "@timestamp": random_timestamp(offset_hours),
        "message": fake.sentence(),
        "event": {
            "kind": "event",
            "category": [category],
            "type": [fields["type"]()],
            "action": fields["action"](),
            "outcome": fields["outcome"](),
        },
        "host": {
            "name": host_name,
            "ip": fake.ipv4_private(),
            "os": {"type": random.choice(OS_TYPES)},
        },
        "user": {"name": user_name, "domain": fake.domain_word()},
        "source": {"ip": fake.ipv4()},
        "destination": {"ip": fake.ipv4(), "port": fake.port_number()},
        "process": {
            "name": random.choice(PROCESS_NAMES),
            "pid": random.randint(100, 65535),
            "command_line": fake.file_path(depth=3),
        },
    }


def generate_events(
    n: int = 1000,
    user_count: int = 20,
    host_count: int = 20,
    offset_hours: Optional[int] = None,
) -> list:
    users = create_user_pool(user_count)
    hosts = create_host_pool(host_count)
    return [
        generate_event(random.choice(users), random.choice(hosts), offset_hours)
        for _ in range(n)
    ]


def generate_alert(
    user_name: Optional[str] = None,
    host_name: Optional[str] = None,
    space: str = DEFAULT_SPACE,
) -> dict:
    user_name = user_name or fake.user_name()
    host_name = host_name or fake.hostname()
    rule_name = random.choice(RULE_NAMES)
    severity = random.choice(SEVERITIES)
    return {
        "@timestamp": datetime.now(timezone.utc).isoformat(),
        "kibana": {
            "alert": {
                "uuid": str(uuid4()),
                "status": "active",
                "workflow_status": "open",
                "severity": severity,
                "risk_score": float(SEVERITIES.index(severity) * 25 + 21),
                "rule": {"name": rule_name, "uuid": str(uuid4())},
                "reason": f"{rule_name} on {host_name} by {user_name}",
            },
            "space_ids": [space],
        },
        "host": {"name": host_name},
        "user": {"name": user_name},
        "event": {"kind": "signal"},
    }


def generate_alerts(
    n: int = 100, user_count: int = 10, host_count: int = 10, space: str = DEFAULT_SPACE
) -> list:
    users = create_user_pool(user_count)
    hosts = create_host_pool(host_count)
    return [
        generate_alert(random.choice(users), random.choice(hosts), space)
        for _ in range(n)
    ]


async def alerts_stream(
    entity_count: int,
    alerts_per_entity: int,
    limit: Optional[int] = None,
    space: str = DEFAULT_SPACE,
):
    """Lazily yield alerts, alerts_per_entity for each generated user/host pair."""
    generated = 0
    for _ in range(entity_count):
        user_name = fake.user_name()
        host_name = fake.domain_name()
        for _ in range(alerts_per_entity):
            if limit is not None and generated >= limit:
                return
            yield generate_alert(user_name, host_name, space)
            generated += 1
