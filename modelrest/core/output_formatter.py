"""Output Formatter — wraps results in a single-key envelope.

Invariants:
    - Exactly one key in the returned mapping
    - Sequences get the plural key, single records the singular one
    - override_output_name replaces the model name in both forms
"""

from collections.abc import Sequence
from typing import Any

from modelrest.core.naming import pluralize
from modelrest.core.options import ControllerOptions


def envelope_key(name: str, options: ControllerOptions, plural: bool) -> str:
    base = options.override_output_name or name
    return pluralize(base) if plural else base


def format_output(results: Any, name: str, options: ControllerOptions) -> dict:
    """Wrap one record (mapping) or a list of records under the envelope key."""
    plural = isinstance(results, Sequence) and not isinstance(results, (str, bytes))
    return {envelope_key(name, options, plural): results}
