from __future__ import annotations

from typing import Iterable, Iterator, Sequence

from ..auth.principal import Principal
from ..auth.visibility import can_read_comment
from ..domain.ports.reports import CommentData, ReportData


class VisibleComments:
    """Lazy, restartable view over the comments a principal may read.

    Each iteration re-applies the predicate to the source sequence in order;
    the view keeps no cursor between iterations.
    """

    def __init__(self, principal: Principal, comments: Sequence[CommentData], report: ReportData):
        self._principal = principal
        self._comments = tuple(comments)
        self._report = report

    def __iter__(self) -> Iterator[CommentData]:
        return (
            comment
            for comment in self._comments
            if can_read_comment(self._principal, comment, self._report)
        )

    def __len__(self) -> int:
        return sum(1 for _ in self)


class CommentVisibilityGate:
    def filter(
        self,
        principal: Principal,
        comments: Iterable[CommentData],
        report: ReportData,
    ) -> VisibleComments:
        return VisibleComments(principal, list(comments), report)


comment_gate = CommentVisibilityGate()
