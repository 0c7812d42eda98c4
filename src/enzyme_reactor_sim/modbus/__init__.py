"""
Modbus Interface Package
========================

Modbus/TCP telemetry gateway for the reactor fleet.

Components:
- register_map.py: address layout (50-word block per reactor, fleet block at 1000)
- protocols.py: value <-> register word encoding
- slave.py: pymodbus TCP server holding the register image
- gateway.py: publishes fleet state, validates and forwards commands

Architecture:

┌─────────────────┐
│   SCADA / HMI   │  External collaborators
└────────┬────────┘
         │ Modbus/TCP
┌────────▼────────┐
│   ModbusSlave   │  Register image (server thread)
└────────┬────────┘
         │
┌────────▼────────┐
│ TelemetryGateway│  publish() / poll_commands()
└────────┬────────┘
         │
┌────────▼────────┐
│   ReactorFleet  │  Simulation thread
└─────────────────┘

Date: October 2026
License: MIT
"""

from .protocols import decode_value, encode_value, validate_encoding
from .register_map import RegisterDefinition, RegisterType, TelemetryRegisterMap
from .slave import ModbusServerConfig, ModbusSlave
from .gateway import STATUS_CODES, TelemetryGateway, validate_setpoint

__all__ = [
    "decode_value",
    "encode_value",
    "validate_encoding",
    "RegisterDefinition",
    "RegisterType",
    "TelemetryRegisterMap",
    "ModbusServerConfig",
    "ModbusSlave",
    "STATUS_CODES",
    "TelemetryGateway",
    "validate_setpoint",
]
