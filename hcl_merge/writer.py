"""
Canonical text rendering of structured-config (HCL) documents.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from .errors import SerializeError
from .lexer import IDENT_RE
from .models import Block, Document


logger = logging.getLogger(__name__)

LABEL_RE = re.compile(r'(?:[^"\\\n]|\\.)*')


def _has_template(label: str) -> bool:
    """Labels are literal strings; template sequences must be escaped as $${ or %%{"""
    stripped = label.replace("$${", "").replace("%%{", "")
    return "${" in stripped or "%{" in stripped


class DocumentWriter:
    """Render Block/attribute trees as formatted HCL text"""

    INDENT = "  "

    @staticmethod
    def write(document: Document, output: Optional[Union[str, Path]] = None) -> str:
        """
        Render a document.

        Top-level items are separated by exactly one blank line and the
        text ends with a single newline. An empty document renders as an
        empty string.

        Args:
            document: Document to render
            output: Optional file path to also write the text to

        Returns:
            Rendered text

        Raises:
            SerializeError: If the tree contains names, labels or values
                that cannot be written as valid HCL, or blocks nested too deep
        """
        sections = []
        if document.attributes:
            sections.append(DocumentWriter._write_attributes(document.attributes, 0))
        try:
            for block in document.blocks:
                sections.append(DocumentWriter.write_block(block, 0))
        except RecursionError:
            raise SerializeError("nesting too deep: blocks are nested deeper than "
                                 "the writer can follow") from None

        content = "\n\n".join(sections) + "\n" if sections else ""

        if output:
            output = Path(output)
            output.parent.mkdir(parents=True, exist_ok=True)
            with open(output, 'w', encoding='utf-8') as f:
                f.write(content)
            logger.info(f"Document written to {output}")

        return content

    @staticmethod
    def write_block(block: Block, depth: int = 0) -> str:
        """Render one block at the given nesting depth, without trailing newline"""
        indent = DocumentWriter.INDENT * depth

        if not IDENT_RE.fullmatch(block.type):
            raise SerializeError(f"invalid block type {block.type!r}")
        for label in block.labels:
            if not LABEL_RE.fullmatch(label) or _has_template(label):
                raise SerializeError(f"invalid label {label!r} on block {block.key!r}")

        header = " ".join([block.type] + [f'"{label}"' for label in block.labels])

        parts = []
        if block.attributes:
            parts.append(DocumentWriter._write_attributes(block.attributes, depth + 1))
        for child in block.children:
            parts.append(DocumentWriter.write_block(child, depth + 1))

        if not parts:
            return f"{indent}{header} {{\n{indent}}}"
        body = "\n\n".join(parts)
        return f"{indent}{header} {{\n{body}\n{indent}}}"

    @staticmethod
    def _write_attributes(attributes: Dict[str, str], depth: int) -> str:
        """Render attributes in mapping order with aligned equals signs"""
        indent = DocumentWriter.INDENT * depth

        # A multi-line value closes the alignment run it belongs to
        runs: List[List[str]] = [[]]
        for name, value in attributes.items():
            if not IDENT_RE.fullmatch(name):
                raise SerializeError(f"invalid attribute name {name!r}")
            if not value or not value.strip():
                raise SerializeError(f"attribute {name!r} has an empty expression")
            runs[-1].append(name)
            if "\n" in value.strip():
                runs.append([])

        lines = []
        for run in runs:
            if not run:
                continue
            width = max(len(name) for name in run)
            for name in run:
                lines.append(f"{indent}{name.ljust(width)} = {attributes[name].strip()}")

        return "\n".join(lines)
