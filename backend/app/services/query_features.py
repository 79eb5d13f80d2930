"""
Wayfarer Backend — Query Features (filter, sort, project, paginate)
=====================================================================

What:  Turns the pipeline's cleaned query parameters into SQL clauses.
Why:   List endpoints share the same query language; keeping it in one
       place keeps route handlers thin.
How:   Reads `request.state.query` (already sanitized and de-polluted by the
       middleware pipeline) and applies it to a SQLAlchemy select.

Query language:
    ?difficulty=easy                   equality
    ?duration=5&duration=9             IN (whitelisted fields keep every value)
    ?price[lt]=1500&ratingsAverage[gte]=4.7
                                       range operators gte, gt, lte, lt
    ?sort=price,-ratingsAverage        ascending / descending
    ?fields=name,price                 inclusion projection (or -field to exclude)
    ?page=2&limit=10                   pagination

Values are cast to the column type; a value that does not fit raises
CastError, which the error translation layer turns into a 400.
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from sqlalchemy import Select
from sqlalchemy.sql.elements import ColumnElement

from app.database import CastError

RESERVED_PARAMS = {"page", "sort", "limit", "fields"}
OPERATOR_KEY = re.compile(r"^(?P<field>\w+)\[(?P<op>gte|gt|lte|lt)\]$")
DEFAULT_PAGE_SIZE = 100


def _cast(api_name: str, column: ColumnElement, raw: Any) -> Any:
    """Cast a query-string value to the python type of its column."""
    try:
        python_type = column.expression.type.python_type
    except NotImplementedError:
        return raw
    if python_type is bool:
        lowered = str(raw).lower()
        if lowered in {"true", "1"}:
            return True
        if lowered in {"false", "0"}:
            return False
        raise CastError(api_name, raw)
    try:
        return python_type(raw)
    except (TypeError, ValueError):
        raise CastError(api_name, raw) from None


class QueryFeatures:
    """
    Filtering, sorting, projection and pagination for one list request.

    Args:
        query:         Cleaned query parameters (str or list of str values).
        columns:       API field name → column; only these can be filtered
                       or sorted on.
        default_sort:  Sort applied when ?sort is absent.
        hidden_fields: Fields dropped from output unless explicitly requested.
    """

    def __init__(
        self,
        query: Mapping[str, Any],
        columns: Mapping[str, ColumnElement],
        default_sort: str = "-createdAt",
        hidden_fields: Iterable[str] = (),
    ):
        self.query = dict(query)
        self.columns = dict(columns)
        self.default_sort = default_sort
        self.hidden_fields = set(hidden_fields)

    # ── Filtering ─────────────────────────────────────────────────────────
    def filter(self, stmt: Select) -> Select:
        for key, raw in self.query.items():
            if key in RESERVED_PARAMS:
                continue
            match = OPERATOR_KEY.match(key)
            field, op = (match.group("field"), match.group("op")) if match else (key, None)
            column = self.columns.get(field)
            if column is None:
                continue

            if op is not None:
                value = _cast(field, column, self._last(raw))
                stmt = stmt.where(
                    {
                        "gte": column >= value,
                        "gt": column > value,
                        "lte": column <= value,
                        "lt": column < value,
                    }[op]
                )
            elif isinstance(raw, list):
                stmt = stmt.where(column.in_([_cast(field, column, v) for v in raw]))
            else:
                stmt = stmt.where(column == _cast(field, column, raw))
        return stmt

    # ── Sorting ───────────────────────────────────────────────────────────
    def sort(self, stmt: Select) -> Select:
        spec = self._last(self.query.get("sort")) or self.default_sort
        for name in self._split(spec):
            descending = name.startswith("-")
            column = self.columns.get(name.lstrip("-"))
            if column is None:
                continue
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        return stmt

    # ── Pagination ────────────────────────────────────────────────────────
    def paginate(self, stmt: Select) -> Select:
        page = self._positive_int("page", 1)
        limit = self._positive_int("limit", DEFAULT_PAGE_SIZE)
        return stmt.offset((page - 1) * limit).limit(limit)

    def apply(self, stmt: Select) -> Select:
        """Filter, then sort, then paginate."""
        return self.paginate(self.sort(self.filter(stmt)))

    # ── Projection ────────────────────────────────────────────────────────
    def project(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply ?fields= to a serialized document.

        Inclusion lists keep `id` plus the named fields (hidden fields only
        when named). Exclusion lists (`-field`) drop the named fields on top
        of the hidden ones.
        """
        requested = self._split(self._last(self.query.get("fields")) or "")
        included: Set[str] = {f for f in requested if not f.startswith("-")}
        excluded: Set[str] = {f[1:] for f in requested if f.startswith("-")}

        if included:
            return {k: v for k, v in doc.items() if k == "id" or k in included}
        dropped = self.hidden_fields | excluded
        return {k: v for k, v in doc.items() if k not in dropped}

    # ── Helpers ───────────────────────────────────────────────────────────
    @staticmethod
    def _last(raw: Any) -> Optional[str]:
        if isinstance(raw, list):
            return raw[-1] if raw else None
        return raw

    @staticmethod
    def _split(spec: str) -> List[str]:
        return [part.strip() for part in spec.split(",") if part.strip()]

    def _positive_int(self, name: str, default: int) -> int:
        raw = self._last(self.query.get(name))
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError:
            raise CastError(name, raw) from None
        return value if value > 0 else default
