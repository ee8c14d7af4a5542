"""
Data models for structured-config (HCL) documents.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class DuplicatePolicy(Enum):
    """Handling of sibling blocks sharing a key within one document"""
    LAST = "last"  # later block wins the index slot
    ERROR = "error"  # reject the document pair


def format_block_key(block_type: str, labels: List[str]) -> str:
    """Identity key of a block: type followed by its labels, dot separated"""
    return block_type + "." + ".".join(labels)


@dataclass
class Block:
    """Typed, optionally labelled container of attributes and nested blocks"""
    type: str
    labels: List[str] = field(default_factory=list)
    attributes: Dict[str, str] = field(default_factory=dict)  # name -> raw expression text
    children: List["Block"] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Block key used to match blocks across documents"""
        return format_block_key(self.type, self.labels)

    def copy(self) -> "Block":
        """Deep structural copy"""
        return Block(
            type=self.type,
            labels=list(self.labels),
            attributes=dict(self.attributes),
            children=[child.copy() for child in self.children]
        )

    def find(self, block_type: str, *labels: str) -> Optional["Block"]:
        """Get first nested block with the given type and labels"""
        key = format_block_key(block_type, list(labels))
        for child in self.children:
            if child.key == key:
                return child
        return None


@dataclass
class Document:
    """Ordered sequence of top-level blocks, plus any root attributes"""
    blocks: List[Block] = field(default_factory=list)
    attributes: Dict[str, str] = field(default_factory=dict)

    def find(self, block_type: str, *labels: str) -> Optional[Block]:
        """Get first top-level block with the given type and labels"""
        key = format_block_key(block_type, list(labels))
        for block in self.blocks:
            if block.key == key:
                return block
        return None

    def keys(self) -> List[str]:
        """Block keys of the top-level blocks, in document order"""
        return [block.key for block in self.blocks]

    def copy(self) -> "Document":
        """Deep structural copy"""
        return Document(
            blocks=[block.copy() for block in self.blocks],
            attributes=dict(self.attributes)
        )
