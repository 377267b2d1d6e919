from __future__ import annotations

from typing import List, Optional


class PublishError(Exception):
    """A build problem tied to one source document."""

    kind = "error"

    def __init__(self, path: str, message: str, location: Optional[str] = None):
        self.path = path
        self.message = message
        self.location = location
        super().__init__(str(self))

    def __str__(self) -> str:
        where = f"{self.path}:{self.location}" if self.location else self.path
        return f"{where}: {self.kind}: {self.message}"


class MalformedFrontMatter(PublishError):
    kind = "malformed front matter"


class MalformedNotebook(PublishError):
    kind = "malformed notebook"


class DuplicatePermalink(PublishError):
    kind = "duplicate permalink"

    def __init__(self, path: str, permalink: str, others: List[str]):
        self.permalink = permalink
        self.others = list(others)
        super().__init__(
            path,
            f"{permalink} is also claimed by {', '.join(self.others)}",
        )


class DanglingReference(PublishError):
    kind = "dangling reference"

    def __init__(self, path: str, target: str):
        self.target = target
        super().__init__(path, f"no document or file for {target!r}", location=target)


class UnknownLayout(PublishError):
    kind = "unknown layout"

    def __init__(self, path: str, layout: str):
        self.layout = layout
        super().__init__(path, f"no template for layout {layout!r}")


class BuildFailed(Exception):
    def __init__(self, errors: List[PublishError]):
        self.errors = list(errors)
        super().__init__(f"build failed with {len(self.errors)} error(s)")

    def report(self) -> str:
        return "\n".join(str(e) for e in self.errors)


class ErrorCollector:
    """Gathers every independent error of a build so they can be reported together."""

    def __init__(self):
        self.errors: List[PublishError] = []

    def add(self, err: PublishError) -> None:
        self.errors.append(err)

    def __bool__(self) -> bool:
        return bool(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def of_kind(self, cls) -> List[PublishError]:
        return [e for e in self.errors if isinstance(e, cls)]

    def raise_if_errors(self) -> None:
        if self.errors:
            raise BuildFailed(
                sorted(self.errors, key=lambda e: (e.path, e.location or ""))
            )
