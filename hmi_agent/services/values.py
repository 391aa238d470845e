# hmi_agent/services/values.py

import random
from typing import Optional, Sequence

STATUSES = ["ONLINE", "READY", "ACTIVE", "STANDBY", "ALARM"]


class ValueSource:
    """
    Supplies the illustrative numbers drawn on rendered screens. All
    randomness in rendering goes through here, so a fixed seed gives
    reproducible images.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def uniform(self, low: float, high: float) -> float:
        return self._rng.uniform(low, high)

    def randint(self, low: int, high: int) -> int:
        return self._rng.randint(low, high)

    def choice(self, options: Sequence[str]) -> str:
        return self._rng.choice(list(options))

    def status(self) -> str:
        return self.choice(STATUSES)

    def display_value(self, label: str) -> str:
        name = (label or "").lower()
        if "temperature" in name:
            return f"{self.uniform(20, 50):.1f}"
        if "pressure" in name:
            return f"{self.uniform(100, 150):.0f}"
        if "flow" in name:
            return f"{self.uniform(10, 30):.1f}"
        if "level" in name or "concentration" in name:
            return f"{self.uniform(70, 100):.1f}"
        if "voltage" in name:
            return f"{self.uniform(220, 240):.0f}"
        if "current" in name:
            return f"{self.uniform(5, 15):.1f}"
        if "speed" in name or "rpm" in name:
            return f"{self.uniform(1000, 1500):.0f}"
        return f"{self.uniform(0, 100):.1f}"

    def input_value(self, label: str) -> str:
        name = (label or "").lower()
        if "setpoint" in name or "target" in name:
            return f"{self.uniform(50, 100):.1f}"
        if "time" in name:
            return f"{self.uniform(30, 90):.0f}"
        if "count" in name:
            return str(self.randint(0, 999))
        return f"{self.uniform(0, 100):.1f}"

    def system_value(self, component: str) -> str:
        name = (component or "").lower()
        if "pressure" in name or "pump" in name:
            return f"{self.uniform(50, 150):.0f} PSI"
        if any(word in name for word in ("temperature", "heat", "cool")):
            return f"{self.uniform(20, 70):.0f}°C"
        if "flow" in name or "rate" in name:
            return f"{self.uniform(10, 30):.1f} L/min"
        if any(word in name for word in ("speed", "motor", "rpm")):
            return f"{self.uniform(1000, 1500):.0f} RPM"
        if "voltage" in name or "volt" in name:
            return f"{self.uniform(200, 250):.0f}V"
        if "current" in name or "amp" in name:
            return f"{self.uniform(5, 15):.1f}A"
        if any(word in name for word in ("level", "concentration", "gas")):
            return f"{self.uniform(70, 100):.0f}%"
        if any(word in name for word in ("position", "extend", "retract")):
            return self.choice(["EXTENDED", "RETRACTED"])
        if "status" in name or "state" in name:
            return self.choice(["ACTIVE", "READY"])
        if "time" in name or "timer" in name:
            return f"{self.uniform(30, 150):.0f}s"
        return f"{self.uniform(0, 100):.0f}%"

    def fraction(self, low: float = 0.2, high: float = 1.0) -> float:
        return self.uniform(low, high)

    def clock(self) -> str:
        return f"{self.randint(0, 23):02d}:{self.randint(0, 59):02d}:{self.randint(0, 59):02d}"
