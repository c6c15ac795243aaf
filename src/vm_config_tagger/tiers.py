"""
Tier policy: the next capacity tier for a resource.

CPU tiers are a linear scale capped at MAX_CPU_TIER vCPUs. Memory tiers are
powers of two (in MB); the next tier is one doubling above the largest power
of two not exceeding the current size, capped at 2**MAX_MEMORY_EXPONENT MB.
Tier names are the decimal value as text, which is also the tag name expected
in the matching tag category.
"""
import math

from vm_config_tagger.schemas import ResourceCategory, VMHardwareSnapshot

MAX_CPU_TIER = 4
MAX_MEMORY_EXPONENT = 23


def next_cpu_tier(num_cpu: int) -> str:
    """Return the CPU tier one vCPU above `num_cpu`, at most MAX_CPU_TIER."""
    if num_cpu < 0:
        raise ValueError(f"CPU count must not be negative, got {num_cpu}")
    return str(min(num_cpu + 1, MAX_CPU_TIER))


def next_memory_tier(memory_mb: float) -> str:
    """Return the memory tier (MB) one power of two above `memory_mb`.

    Raises:
        ValueError: for zero or negative sizes, where log2 is undefined
    """
    if memory_mb <= 0:
        raise ValueError(f"memory size must be positive, got {memory_mb}")

    exponent = min(math.floor(math.log2(memory_mb)) + 1, MAX_MEMORY_EXPONENT)
    # sizes below 1 MB would give a negative exponent
    exponent = max(exponent, 0)
    return str(2 ** exponent)


def next_tier(category: ResourceCategory, snapshot: VMHardwareSnapshot) -> str:
    """Apply the policy matching `category` to the VM's current hardware."""
    if category is ResourceCategory.CPU:
        return next_cpu_tier(snapshot.num_cpu)
    if category is ResourceCategory.MEMORY:
        return next_memory_tier(snapshot.memory_mb)
    raise ValueError(f"no tier policy for {category.value} alarms")
