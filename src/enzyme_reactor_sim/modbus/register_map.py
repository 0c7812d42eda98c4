"""
Telemetry Register Map
======================

Address layout of the fleet's Modbus image.

This module only decides WHERE values live; it does not read the fleet,
apply commands or enforce setpoint limits.

LAYOUT
======

Every reactor owns a block of 50 words (or bits) starting at
``index * 50`` in each table:

Input registers (FC 04, read-only):
    +0  temperature              float32  °C
    +2  pH                       float32
    +4  pressure                 float32  bar
    +6  flow_rate                float32  mL/min
    +8  enzyme_activity          float32  %
    +10 substrate_concentration  float32  g/L
    +12 product_yield            float32  %
    +14 dissolved_oxygen         float32  %
    +16 hours_remaining          float32  h
    +18 anomaly_score            float32
    +20 predicted_yield          float32  %
    +22 status_code              uint16
    +23 unresolved_alerts        uint16

Holding registers (FC 03/06/16, read/write):
    +0  target_temperature       float32  °C
    +2  target_pH                float32
    +4  flow_rate_setpoint       float32  mL/min

Coils:           +0 start_optimization
Discrete inputs: +0 critical_alert, +1 anomaly_flagged

Fleet-wide input registers start at 1000. Register names are
``"<reactor_id>.<field>"`` and ``"fleet.<field>"``.

Date: October 2026
License: MIT
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional, Sequence, Tuple

from .protocols import word_count

BLOCK_SIZE = 50
FLEET_BASE_ADDRESS = 1000
MAX_REACTORS = FLEET_BASE_ADDRESS // BLOCK_SIZE


class RegisterType(IntEnum):
    """Modbus data tables."""

    COIL = 0
    DISCRETE_INPUT = 1
    INPUT_REGISTER = 3
    HOLDING_REGISTER = 4


@dataclass(frozen=True)
class RegisterDefinition:
    """
    One named value in the Modbus image.

    Attributes:
        name: Fully qualified name ("RXN-001.pH", "fleet.uptime")
        address: Start address within its table (0-based)
        register_type: Table the value lives in
        data_type: 'float32', 'int16', 'uint16' or 'bool'
        units: Physical units, empty when dimensionless
        reactor_id: Owning reactor, None for fleet registers
    """

    name: str
    address: int
    register_type: RegisterType
    data_type: str
    units: str = ""
    reactor_id: Optional[str] = None

    @property
    def size_words(self) -> int:
        return word_count(self.data_type)

    @property
    def field(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def writable(self) -> bool:
        return self.register_type in (RegisterType.HOLDING_REGISTER, RegisterType.COIL)

    def validate(self) -> None:
        if not 0 <= self.address <= 65535 - self.size_words + 1:
            raise ValueError(f"Register address {self.address} out of range")
        bit_table = self.register_type in (RegisterType.COIL, RegisterType.DISCRETE_INPUT)
        if bit_table != (self.data_type == "bool"):
            raise ValueError(
                f"{self.name}: data type {self.data_type} does not fit "
                f"{self.register_type.name}"
            )


# (field, data_type, units) at consecutive offsets
REACTOR_INPUTS: Tuple[Tuple[str, str, str], ...] = (
    ("temperature", "float32", "°C"),
    ("pH", "float32", ""),
    ("pressure", "float32", "bar"),
    ("flow_rate", "float32", "mL/min"),
    ("enzyme_activity", "float32", "%"),
    ("substrate_concentration", "float32", "g/L"),
    ("product_yield", "float32", "%"),
    ("dissolved_oxygen", "float32", "%"),
    ("hours_remaining", "float32", "h"),
    ("anomaly_score", "float32", ""),
    ("predicted_yield", "float32", "%"),
    ("status_code", "uint16", ""),
    ("unresolved_alerts", "uint16", ""),
)

REACTOR_HOLDINGS: Tuple[Tuple[str, str, str], ...] = (
    ("target_temperature", "float32", "°C"),
    ("target_pH", "float32", ""),
    ("flow_rate_setpoint", "float32", "mL/min"),
)

REACTOR_COILS = ("start_optimization",)

REACTOR_DISCRETE_INPUTS = ("critical_alert", "anomaly_flagged")

FLEET_INPUTS: Tuple[Tuple[str, str, str], ...] = (
    ("active_reactors", "uint16", ""),
    ("average_yield", "float32", "%"),
    ("system_health", "float32", "%"),
    ("daily_production", "float32", ""),
    ("uptime", "float32", "%"),
    ("simulation_time", "float32", "s"),
)


class TelemetryRegisterMap:
    """
    Register layout for a fixed set of reactors.

    Args:
        reactor_ids: Reactors in block order
    """

    def __init__(self, reactor_ids: Sequence[str]):
        reactor_ids = list(reactor_ids)
        if len(reactor_ids) > MAX_REACTORS:
            raise ValueError(
                f"At most {MAX_REACTORS} reactors fit below the fleet block, "
                f"got {len(reactor_ids)}"
            )
        if len(set(reactor_ids)) != len(reactor_ids):
            raise ValueError("Duplicate reactor ids in register map")

        self.reactor_ids = reactor_ids
        self._registers: Dict[str, RegisterDefinition] = {}

        for index, reactor_id in enumerate(reactor_ids):
            self._define_reactor_block(index * BLOCK_SIZE, reactor_id)
        self._define_sequential(
            "fleet", FLEET_BASE_ADDRESS, FLEET_INPUTS, RegisterType.INPUT_REGISTER
        )

        for table in RegisterType:
            self._check_overlaps(self.registers_of(table))

    def _define_reactor_block(self, base: int, reactor_id: str) -> None:
        self._define_sequential(
            reactor_id, base, REACTOR_INPUTS, RegisterType.INPUT_REGISTER
        )
        self._define_sequential(
            reactor_id, base, REACTOR_HOLDINGS, RegisterType.HOLDING_REGISTER
        )
        bits = [(name, "bool", "") for name in REACTOR_COILS]
        self._define_sequential(reactor_id, base, bits, RegisterType.COIL)
        bits = [(name, "bool", "") for name in REACTOR_DISCRETE_INPUTS]
        self._define_sequential(reactor_id, base, bits, RegisterType.DISCRETE_INPUT)

    def _define_sequential(self, prefix, base, layout, register_type) -> None:
        address = base
        reactor_id = None if prefix == "fleet" else prefix
        for field_name, data_type, units in layout:
            reg = RegisterDefinition(
                name=f"{prefix}.{field_name}",
                address=address,
                register_type=register_type,
                data_type=data_type,
                units=units,
                reactor_id=reactor_id,
            )
            reg.validate()
            self._registers[reg.name] = reg
            address += reg.size_words

    @staticmethod
    def _check_overlaps(registers: List[RegisterDefinition]) -> None:
        ordered = sorted(registers, key=lambda r: r.address)
        for current, following in zip(ordered, ordered[1:]):
            if current.address + current.size_words > following.address:
                raise ValueError(
                    f"Address conflict: {current.name} overlaps {following.name}"
                )

    def __contains__(self, name: str) -> bool:
        return name in self._registers

    def __len__(self) -> int:
        return len(self._registers)

    def get(self, name: str) -> Optional[RegisterDefinition]:
        return self._registers.get(name)

    def lookup(self, reactor_id: Optional[str], field_name: str) -> RegisterDefinition:
        """
        Register of a reactor (or of the fleet when ``reactor_id`` is None).

        Raises:
            KeyError: No such register
        """
        prefix = "fleet" if reactor_id is None else reactor_id
        return self._registers[f"{prefix}.{field_name}"]

    def registers_of(self, register_type: RegisterType) -> List[RegisterDefinition]:
        return [r for r in self._registers.values() if r.register_type == register_type]

    def table_size(self, register_type: RegisterType) -> int:
        """Words (or bits) a data block needs to hold every register of a table."""
        return max(
            (r.address + r.size_words for r in self.registers_of(register_type)),
            default=0,
        )

    def describe(self) -> List[str]:
        """One line per register, in Modbus reference numbering."""
        offsets = {
            RegisterType.COIL: 1,
            RegisterType.DISCRETE_INPUT: 10001,
            RegisterType.INPUT_REGISTER: 30001,
            RegisterType.HOLDING_REGISTER: 40001,
        }
        lines = []
        for reg in sorted(
            self._registers.values(), key=lambda r: (r.register_type, r.address)
        ):
            ref = offsets[reg.register_type] + reg.address
            lines.append(
                f"{ref:<7} {reg.name:<40} {reg.data_type:<8} {reg.units}".rstrip()
            )
        return lines
