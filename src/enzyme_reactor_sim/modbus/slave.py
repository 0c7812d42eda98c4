"""
Modbus TCP Slave Server
=======================

pymodbus 3.x TCP server exposing the telemetry register image.

The server runs its own asyncio event loop in a daemon thread. The
simulation thread only touches the data blocks through this class, which
serializes access with a lock.

Date: October 2026
License: MIT
"""

import asyncio
import logging
import math
import threading
from contextlib import suppress
from dataclasses import dataclass
from typing import Optional

from pymodbus import ModbusDeviceIdentification
from pymodbus.datastore import (
    ModbusDeviceContext,
    ModbusSequentialDataBlock,
    ModbusServerContext,
)
from pymodbus.server import ServerAsyncStop, StartAsyncTcpServer

from .protocols import Value, decode_value, encode_value
from .register_map import RegisterDefinition, RegisterType, TelemetryRegisterMap

logger = logging.getLogger(__name__)

# Largest magnitude accepted into a register
VALUE_LIMIT = 1e9


@dataclass
class ModbusServerConfig:
    """Configuration for the Modbus TCP server."""

    host: str = "127.0.0.1"
    port: int = 5020
    unit_id: int = 1

    vendor_name: str = "Enzyme Reactor Simulator"
    product_code: str = "ERS-300"
    product_name: str = "Enzyme Reactor Telemetry Gateway"
    model_name: str = "Virtual Bioreactor PLC"
    version: str = "1.0.0"

    startup_timeout_sec: float = 5.0
    shutdown_timeout_sec: float = 3.0

    def validate(self) -> None:
        if not 0 < self.port <= 65535:
            raise ValueError(f"Port {self.port} out of range")
        if not 0 <= self.unit_id <= 247:
            raise ValueError(f"Unit id {self.unit_id} out of range [0, 247]")
        if self.startup_timeout_sec <= 0 or self.shutdown_timeout_sec <= 0:
            raise ValueError("Server timeouts must be positive")


class ModbusSlave:
    """
    Thread-safe register image plus its TCP server lifecycle.

    Args:
        register_map: Layout of the image
        config: Server configuration
    """

    def __init__(
        self,
        register_map: TelemetryRegisterMap,
        config: Optional[ModbusServerConfig] = None,
    ):
        self.register_map = register_map
        self.config = config or ModbusServerConfig()
        self.config.validate()

        def block(table: RegisterType, minimum: int) -> ModbusSequentialDataBlock:
            size = max(register_map.table_size(table) + 10, minimum)
            return ModbusSequentialDataBlock(0, [0] * size)

        self._blocks = {
            RegisterType.INPUT_REGISTER: block(RegisterType.INPUT_REGISTER, 1100),
            RegisterType.HOLDING_REGISTER: block(RegisterType.HOLDING_REGISTER, 100),
            RegisterType.COIL: block(RegisterType.COIL, 100),
            RegisterType.DISCRETE_INPUT: block(RegisterType.DISCRETE_INPUT, 100),
        }

        device = ModbusDeviceContext(
            di=self._blocks[RegisterType.DISCRETE_INPUT],
            co=self._blocks[RegisterType.COIL],
            hr=self._blocks[RegisterType.HOLDING_REGISTER],
            ir=self._blocks[RegisterType.INPUT_REGISTER],
        )
        self.context = ModbusServerContext(
            devices={self.config.unit_id: device}, single=False
        )

        self.identity = ModbusDeviceIdentification()
        self.identity.VendorName = self.config.vendor_name
        self.identity.ProductCode = self.config.product_code
        self.identity.ProductName = self.config.product_name
        self.identity.ModelName = self.config.model_name
        self.identity.MajorMinorRevision = self.config.version

        self._lock = threading.RLock()
        self._running = threading.Event()
        self._ready = threading.Event()
        self._shutdown = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._startup_error: Optional[BaseException] = None

    # ------------------------------------------------------------------
    # Register access
    # ------------------------------------------------------------------

    def _resolve(self, name: str, *tables: RegisterType) -> RegisterDefinition:
        reg = self.register_map.get(name)
        if reg is None or reg.register_type not in tables:
            raise ValueError(f"Invalid register reference: {name}")
        return reg

    def write(self, name: str, value: Value) -> None:
        """
        Store a value into any register of the image.

        Raises:
            ValueError: Unknown register, non-finite or out-of-range value
        """
        reg = self._resolve(name, *RegisterType)
        if reg.data_type != "bool":
            value = float(value)
            if not math.isfinite(value) or abs(value) > VALUE_LIMIT:
                raise ValueError(f"{name}: value {value} not representable")

        words = encode_value(value, reg.data_type)
        with self._lock:
            self._blocks[reg.register_type].setValues(reg.address, words)

    def read(self, name: str) -> Value:
        reg = self._resolve(name, *RegisterType)
        with self._lock:
            words = self._blocks[reg.register_type].getValues(reg.address, reg.size_words)
        return decode_value(list(words), reg.data_type)

    def update_input_register(self, name: str, value: float) -> None:
        self._resolve(name, RegisterType.INPUT_REGISTER)
        self.write(name, value)

    def update_discrete_input(self, name: str, value: bool) -> None:
        self._resolve(name, RegisterType.DISCRETE_INPUT)
        self.write(name, bool(value))

    def read_holding_register(self, name: str) -> float:
        self._resolve(name, RegisterType.HOLDING_REGISTER)
        return self.read(name)

    def read_coil(self, name: str) -> bool:
        self._resolve(name, RegisterType.COIL)
        return bool(self.read(name))

    # ------------------------------------------------------------------
    # Server lifecycle
    # ------------------------------------------------------------------

    def start(self, blocking: bool = False) -> None:
        """
        Start serving.

        Args:
            blocking: Run in the calling thread until stopped

        Raises:
            RuntimeError: Server did not come up within the startup timeout
        """
        if self._running.is_set():
            logger.warning("Modbus server already running")
            return

        self._running.set()
        self._ready.clear()
        self._shutdown.clear()
        self._startup_error = None

        if blocking:
            self._serve()
            return

        self._thread = threading.Thread(
            target=self._serve, daemon=True, name="ModbusTCPServer"
        )
        self._thread.start()

        if not self._ready.wait(timeout=self.config.startup_timeout_sec):
            self._running.clear()
            raise RuntimeError("Modbus server startup timeout")
        if self._startup_error is not None:
            self._running.clear()
            raise RuntimeError(f"Modbus server failed to start: {self._startup_error}")

        logger.info(f"Modbus server listening on {self.config.host}:{self.config.port}")

    def _serve(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        try:
            loop.run_until_complete(self._serve_async())
        except Exception as e:
            self._startup_error = e
            logger.error(f"Modbus server error: {type(e).__name__}: {e}")
        finally:
            self._running.clear()
            self._ready.set()

            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            with suppress(Exception):
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()
            self._loop = None

    async def _serve_async(self) -> None:
        server = asyncio.ensure_future(
            StartAsyncTcpServer(
                context=self.context,
                identity=self.identity,
                address=(self.config.host, self.config.port),
            )
        )
        try:
            # Surface bind errors before reporting ready
            await asyncio.sleep(0.1)
            if server.done():
                server.result()
            self._ready.set()

            while not self._shutdown.is_set() and not server.done():
                await asyncio.sleep(0.1)
        finally:
            with suppress(Exception):
                await ServerAsyncStop()
            if not server.done():
                server.cancel()

    def stop(self) -> None:
        """Stop serving and join the server thread."""
        if not self._running.is_set() and self._thread is None:
            return

        self._shutdown.set()

        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=self.config.shutdown_timeout_sec)
            if self._thread.is_alive():
                logger.warning("Modbus server thread did not terminate cleanly")
        self._thread = None
        self._running.clear()

        logger.info("Modbus server stopped")

    @property
    def is_running(self) -> bool:
        return self._running.is_set()
