"""
Repository Interfaces (Ports) for the progression engine.

This package defines abstract interfaces that decouple the progression
logic from infrastructure (database, external services). Implementations
are provided in the infrastructure layer.

Architecture follows the Ports & Adapters (Hexagonal) pattern:
- Ports: Abstract interfaces defined here (what the engine needs)
- Adapters: Concrete implementations in infrastructure/ (how it's provided)

Usage:
    from application.ports import BlockRepository, SignalRepository

    class BlockProgressionService:
        def __init__(self, block_repo: BlockRepository, ...):
            self._block_repo = block_repo
"""

# Signal store (read-only)
from application.ports.signal_repository import (
    SignalRepository,
    CheckInRecord,
    CompletionRecord,
)

# Prescription store
from application.ports.prescription_repository import (
    PrescriptionRepository,
    ProgramRecord,
    PrescribedExercise,
    PrescriptionUpdate,
    WeightUpdate,
    DEFAULT_FREQUENCY,
)

# Block schedule persistence
from application.ports.block_repository import BlockRepository, CellEdit

# Periodization cycle persistence
from application.ports.cycle_repository import (
    CycleRepository,
    CycleAdvance,
    NewCycle,
)

# Clinician flags
from application.ports.flag_repository import FlagRepository

__all__ = [
    # Signals
    "SignalRepository",
    "CheckInRecord",
    "CompletionRecord",
    # Prescriptions
    "PrescriptionRepository",
    "ProgramRecord",
    "PrescribedExercise",
    "PrescriptionUpdate",
    "WeightUpdate",
    "DEFAULT_FREQUENCY",
    # Blocks
    "BlockRepository",
    "CellEdit",
    # Cycles
    "CycleRepository",
    "CycleAdvance",
    "NewCycle",
    # Flags
    "FlagRepository",
]
