from __future__ import annotations

import datetime
import decimal
import inspect
import pathlib
import uuid
from dataclasses import dataclass
from typing import Any, TypeGuard

from diforge._internal.type_checks import is_runtime_class


@dataclass(frozen=True, slots=True)
class ConcreteTypeAutowiringPolicy:
    """Internal policy deciding which classes may be constructed without a definition."""

    ignored_base_types: tuple[type[Any], ...] = (
        pathlib.PurePath,
        datetime.datetime,
        datetime.date,
        datetime.time,
        datetime.timedelta,
        uuid.UUID,
        decimal.Decimal,
        BaseException,
    )

    def is_eligible_concrete(self, candidate: object) -> TypeGuard[type[Any]]:
        """Return true when a candidate can be autowired as a concrete class.

        Args:
            candidate: Value being checked for eligibility or runtime type constraints.

        """
        if not is_runtime_class(candidate):
            return False
        if candidate.__module__ == "builtins":
            return False
        if inspect.isabstract(candidate):
            return False
        if issubclass(candidate, type):
            return False
        return not issubclass(candidate, self.ignored_base_types)

    def is_injectable_dependency(self, annotation: object) -> TypeGuard[type[Any]]:
        """Return true when a parameter annotation names an entry worth looking up.

        Abstract classes and protocols qualify because they can be bound to an
        implementation through an explicit entry; builtins never do.

        Args:
            annotation: Resolved parameter annotation.

        """
        return is_runtime_class(annotation) and annotation.__module__ != "builtins"
