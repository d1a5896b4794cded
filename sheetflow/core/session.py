from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol


class SheetMemory(Protocol):
    """Storage for remembered rule/file -> sheet associations."""

    def lookup(self, rule_id: str, file_name: str) -> Optional[str]:  # pragma: no cover - interface definition
        ...

    def upsert(self, rule_id: str, file_name: str, sheet_name: str) -> None:  # pragma: no cover - interface definition
        ...


@dataclass
class ProcessingSession:
    """Caller-owned state carried between processing runs.

    Attributes:
        last_selected_sheet: Sheet chosen most recently by the user, if any.
        memory: Optional store remembering which sheet a rule used for a file.
        remembered: In-memory associations for runs without a store.
    """

    last_selected_sheet: Optional[str] = None
    memory: Optional[SheetMemory] = None
    remembered: dict[tuple[str, str], str] = field(default_factory=dict)

    def select_sheet(self, sheet_name: str) -> None:
        self.last_selected_sheet = sheet_name

    def sheet_override(self, rule_id: str, file_name: str, explicit: Optional[str] = None) -> Optional[str]:
        """Return the sheet to force for a run, or None to let each sheet-rule decide.

        Precedence: explicit choice, then a remembered association for this
        rule and file, then the last sheet selected in this session.
        """
        if explicit:
            return explicit
        key = (rule_id, file_name)
        if key in self.remembered:
            return self.remembered[key]
        if self.memory is not None:
            stored = self.memory.lookup(rule_id, file_name)
            if stored:
                self.remembered[key] = stored
                return stored
        return self.last_selected_sheet

    def remember(self, rule_id: str, file_name: str, sheet_name: str) -> None:
        self.remembered[(rule_id, file_name)] = sheet_name
        if self.memory is not None:
            self.memory.upsert(rule_id, file_name, sheet_name)
