"""Symbol directory entry domain model"""

from dataclasses import dataclass


@dataclass(frozen=True)
class DirectoryEntry:
    """Tradable instrument listed on a market"""

    code: str
    name: str
    segment: str | None = None

    def matches(self, query: str) -> bool:
        return query.lower() in self.name.lower() or query in self.code
