"""
Message template variable contract.

WhatsApp templates are checked before they are stored: the body must fit
the platform limit and its `{{ name }}` placeholders must match the
declared variables one-to-one, in the same order.
"""

import re
from typing import Dict, List, Sequence

from .errors import (
    ContentTooLong,
    DuplicateVariable,
    UndeclaredVariable,
    UnusedDeclaration,
    VariableOrderMismatch,
)

MAX_TEMPLATE_LENGTH = 1024

VARIABLE_PATTERN = re.compile(r"{{\s*([a-zA-Z0-9_]+)\s*}}")
_RENDER_PATTERN = re.compile(r"{{(.*?)}}")


def _unique(names: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(names))


def extract_variables(content: str) -> List[str]:
    """Placeholder names in order of appearance (duplicates kept)"""
    return VARIABLE_PATTERN.findall(content)


def render_template(content: str, values: Dict[str, str]) -> str:
    """Substitute placeholders; unknown names render as an empty string"""
    return _RENDER_PATTERN.sub(lambda m: str(values.get(m.group(1).strip(), "")), content)


class TemplateVariableValidator:
    """Single-shot validation; the first failing check raises"""

    def __init__(self, max_length: int = MAX_TEMPLATE_LENGTH):
        self.max_length = max_length

    def validate(self, content: str, declared_variables: Sequence[str] = ()) -> None:
        if len(content) > self.max_length:
            raise ContentTooLong(len(content), self.max_length)

        found = extract_variables(content)
        declared = list(declared_variables)

        seen = set()
        duplicates = []
        for name in found:
            if name in seen:
                duplicates.append(name)
            seen.add(name)
        if duplicates:
            raise DuplicateVariable(_unique(duplicates))

        missing = [name for name in found if name not in declared]
        if missing:
            raise UndeclaredVariable(missing)

        unused = [name for name in declared if name not in found]
        if unused:
            raise UnusedDeclaration(_unique(unused))

        if len(declared) == len(found) and declared != found:
            raise VariableOrderMismatch(declared, found)


def validate_template(content: str, declared_variables: Sequence[str] = ()) -> None:
    """Validate with the default platform limit"""
    TemplateVariableValidator().validate(content, declared_variables)
