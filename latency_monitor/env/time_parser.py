import re
from datetime import timedelta


class TimeParser:
    def __init__(self, time_amount: str) -> None:
        self._units = {
            "ms": "milliseconds",
            "s": "seconds",
            "m": "minutes",
            "h": "hours",
            "d": "days",
            "w": "weeks",
        }

        self.time = self.parse(time_amount)

    def parse(self, time_amount: str):
        time_amount = time_amount.strip()

        # The whole amount must be value/unit pairs.
        if re.fullmatch(
            r"(?:\d+(?:\.\d+)?(?:ms|[smhdw])?)+",
            time_amount,
            flags=re.I,
        ) is None:
            raise ValueError(f"Err. - could not parse time amount - {time_amount}")

        amounts: dict[str, float] = {}
        for match in re.finditer(
            r"(?P<val>\d+(\.\d+)?)(?P<unit>ms|[smhdw])?",
            time_amount,
            flags=re.I,
        ):
            unit = self._units.get(
                (match.group("unit") or "s").lower(),
                "seconds",
            )

            amounts[unit] = amounts.get(unit, 0.0) + float(match.group("val"))

        return float(
            timedelta(**amounts).total_seconds()
        )
