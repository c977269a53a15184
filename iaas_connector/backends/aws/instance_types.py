"""EC2 instance type selection from minimum cores and RAM."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InstanceSpec:
    type_name: str
    vcpu: int
    memory_mb: int


# Sorted by resources ascending; the first match is the cheapest fit.
STANDARD_INSTANCES: list[InstanceSpec] = [
    InstanceSpec("t3.micro", 2, 1024),
    InstanceSpec("t3.small", 2, 2048),
    InstanceSpec("t3.medium", 2, 4096),
    InstanceSpec("t3.large", 2, 8192),
    InstanceSpec("t3.xlarge", 4, 16384),
    InstanceSpec("t3.2xlarge", 8, 32768),
    InstanceSpec("m5.4xlarge", 16, 65536),
    InstanceSpec("m5.8xlarge", 32, 131072),
    InstanceSpec("m5.12xlarge", 48, 196608),
    InstanceSpec("m5.16xlarge", 64, 262144),
    InstanceSpec("m5.24xlarge", 96, 393216),
]


def select_instance_type(min_cores: float, min_ram_mb: int) -> str:
    """Select the smallest instance type with at least the given cores and RAM (MB).

    Raises:
        ValueError: If no instance type meets the requirements.
    """
    for spec in STANDARD_INSTANCES:
        if spec.vcpu >= min_cores and spec.memory_mb >= min_ram_mb:
            return spec.type_name
    raise ValueError(f"No instance type with {min_cores} cores and {min_ram_mb} MB of RAM")
