"""Cache-Control policy resolution.

A rule table looks like::

    {
        'default': 'public, max-age=3600',  # or None: leave objects alone
        'rules': [
            {'derived': True, 'directive': 'public, max-age=31536000'},
            {'mime_types': ['image/*'], 'directive': 'public, max-age=86400'},
            {'extensions': ['css', 'js'], 'directive': 'public, max-age=600'},
            {'path': '/private/*', 'directive': 'private, no-store'},
        ],
    }

Rules are checked in order, the first matching rule wins. A rule
matches when every criterion it names matches.
"""

import dataclasses
import fnmatch
from collections.abc import Iterable, Mapping
from typing import Any, Final, final

from django.conf import settings

from server.apps.cache_control.exceptions import ConfigurationError
from server.apps.files.infrastructure.metadata import (
    detect_mime_type,
    get_file_extension,
)
from server.apps.files.infrastructure.storage import StorageConfig
from server.apps.files.models import FileRef

_RULE_KEYS: Final = frozenset((
    'directive',
    'extensions',
    'mime_types',
    'path',
    'derived',
))


@final
@dataclasses.dataclass(frozen=True, slots=True)
class PolicySubject:
    """What a policy decision is based on."""

    identifier: str
    extension: str
    mime_type: str
    derived: bool


@final
@dataclasses.dataclass(frozen=True, slots=True)
class CacheControlRule:
    """One entry of a rule table."""

    directive: str
    extensions: frozenset[str] = frozenset()
    mime_types: tuple[str, ...] = ()
    path: str | None = None
    derived: bool | None = None

    def matches(self, subject: PolicySubject) -> bool:
        """Check whether the rule applies to a subject.

        Args:
            subject: File attributes to check.

        Returns:
            True if every criterion of the rule matches.
        """
        if self.derived is not None and self.derived != subject.derived:
            return False
        if self.extensions and subject.extension not in self.extensions:
            return False
        if self.mime_types and not any(
            _mime_type_matches(pattern, subject.mime_type)
            for pattern in self.mime_types
        ):
            return False
        if self.path is not None:
            return fnmatch.fnmatchcase(subject.identifier, self.path)
        return True


@final
@dataclasses.dataclass(frozen=True, slots=True)
class CachePolicyTable:
    """Ordered rule table with an explicit default."""

    default: str | None = None
    rules: tuple[CacheControlRule, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> 'CachePolicyTable':
        """Parse and validate a rule table from configuration.

        Args:
            raw: Mapping with optional 'default' and 'rules' keys.

        Returns:
            Parsed table.

        Raises:
            ConfigurationError: If the table is malformed.
        """
        if not isinstance(raw, Mapping):
            raise ConfigurationError('Cache-Control policy must be a mapping')

        raw_rules = raw.get('rules') or ()
        if isinstance(raw_rules, (str, bytes)) or not isinstance(
            raw_rules,
            Iterable,
        ):
            raise ConfigurationError('Cache-Control rules must be a list')

        return cls(
            default=_directive(raw.get('default')),
            rules=tuple(
                _parse_rule(position, raw_rule)
                for position, raw_rule in enumerate(raw_rules)
            ),
        )

    def resolve(self, subject: PolicySubject) -> str | None:
        """Get the directive for a subject.

        Args:
            subject: File attributes to resolve.

        Returns:
            Directive of the first matching rule, else the default.
        """
        for rule in self.rules:
            if rule.matches(subject):
                return rule.directive
        return self.default


@final
class PolicyResolver:
    """Resolve the desired Cache-Control directive of files.

    Uses the storage's own ``cacheControl`` table when it has one,
    otherwise the project-wide ``CACHE_CONTROL_POLICY`` setting.
    Resolution performs no I/O.
    """

    def __init__(self, table: Mapping[str, Any] | None = None) -> None:
        """Initialize resolver.

        Args:
            table: Project-wide rule table, defaults to the
                ``CACHE_CONTROL_POLICY`` setting.
        """
        self._raw_table = table
        self._table: CachePolicyTable | None = None

    def resolve(
        self,
        subject: PolicySubject,
        config: StorageConfig,
    ) -> str | None:
        """Resolve the directive for a subject stored in a storage.

        Args:
            subject: File attributes to resolve.
            config: Storage configuration of the file.

        Returns:
            Directive string, or None when objects should be left alone.

        Raises:
            ConfigurationError: If a rule table is malformed.
        """
        if config.cache_control is not None:
            return CachePolicyTable.from_mapping(config.cache_control).resolve(
                subject,
            )
        return self._project_table().resolve(subject)

    def _project_table(self) -> CachePolicyTable:
        if self._table is None:
            raw_table = self._raw_table
            if raw_table is None:
                raw_table = settings.CACHE_CONTROL_POLICY
            self._table = CachePolicyTable.from_mapping(raw_table)
        return self._table


def policy_subject_for(file_ref: FileRef) -> PolicySubject:
    """Describe a file for policy resolution.

    Derivatives inherit the policy of their original: the subject is
    built from the original file, flagged as derived.

    Args:
        file_ref: Original or processed file.

    Returns:
        Subject for PolicyResolver.
    """
    source = file_ref.original_file if file_ref.is_derived else file_ref
    identifier = source.identifier
    return PolicySubject(
        identifier=identifier,
        extension=get_file_extension(identifier),
        mime_type=detect_mime_type(identifier, source.mime_type),
        derived=file_ref.is_derived,
    )


def _mime_type_matches(pattern: str, mime_type: str) -> bool:
    if pattern.endswith('/*'):
        return mime_type.startswith(pattern[:-1])
    return pattern == mime_type


def _directive(raw_directive: object) -> str | None:
    if raw_directive is None:
        return None
    if not isinstance(raw_directive, str):
        raise ConfigurationError(
            f'Cache-Control directive must be a string: {raw_directive!r}',
        )
    return raw_directive.strip() or None


def _parse_rule(position: int, raw_rule: object) -> CacheControlRule:
    if not isinstance(raw_rule, Mapping):
        raise ConfigurationError(f'Rule #{position} must be a mapping')

    unknown = set(raw_rule) - _RULE_KEYS
    if unknown:
        raise ConfigurationError(
            f'Rule #{position} has unknown keys: {sorted(unknown)}',
        )

    directive = _directive(raw_rule.get('directive'))
    if directive is None:
        raise ConfigurationError(f'Rule #{position} has no directive')

    derived = raw_rule.get('derived')
    if derived is not None and not isinstance(derived, bool):
        raise ConfigurationError(f'Rule #{position}: derived must be a bool')

    path = raw_rule.get('path')
    if path is not None and not isinstance(path, str):
        raise ConfigurationError(f'Rule #{position}: path must be a string')

    return CacheControlRule(
        directive=directive,
        extensions=frozenset(
            extension.lstrip('.')
            for extension in _string_list(position, raw_rule, 'extensions')
        ),
        mime_types=_string_list(position, raw_rule, 'mime_types'),
        path=path,
        derived=derived,
    )


def _string_list(
    position: int,
    raw_rule: Mapping[str, Any],
    name: str,
) -> tuple[str, ...]:
    raw_values = raw_rule.get(name) or ()
    if isinstance(raw_values, (str, bytes)) or not isinstance(
        raw_values,
        Iterable,
    ):
        raise ConfigurationError(f'Rule #{position}: {name} must be a list')
    return tuple(str(raw_value).lower() for raw_value in raw_values)
