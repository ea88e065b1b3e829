from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, order=True)
class CounterRecord:
    """One counter read from a stage: (group, name) identity plus its value.

    Equality, hashing and ordering use (group, name) only. ``value`` is None
    when the backend reported the counter without a value.
    """

    group: str
    name: str
    value: int | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        for attr in ("group", "name"):
            text = getattr(self, attr)
            if not isinstance(text, str):
                raise TypeError(f"CounterRecord.{attr} must be a string: {text!r}")
            if not text:
                raise ValueError(f"CounterRecord.{attr} must be non-empty")
        if self.value is not None and (
            isinstance(self.value, bool) or not isinstance(self.value, int)
        ):
            raise TypeError(f"CounterRecord.value must be an int or None: {self.value!r}")

    @property
    def is_positive(self) -> bool:
        return self.value is not None and self.value > 0

    def __str__(self) -> str:
        return f"{self.group}:{self.name} = {self.value}"
