"""
HCL Merge

Merge two HCL documents block by block into one deterministic document.
"""

from .models import Block, Document, DuplicatePolicy
from .errors import (
    HCLMergeError, ParseError, SerializeError,
    MergeError, DuplicateBlockError, ConfigError
)
from .parser import DocumentParser
from .writer import DocumentWriter
from .merge import block_key, copy_attributes, merge_blocks, merge_documents, merge
from .config import MergeConfig
from .merger import HCLMerger

__version__ = "1.0.0"
__all__ = [
    "Block", "Document", "DuplicatePolicy",
    "HCLMergeError", "ParseError", "SerializeError",
    "MergeError", "DuplicateBlockError", "ConfigError",
    "DocumentParser", "DocumentWriter",
    "block_key", "copy_attributes", "merge_blocks", "merge_documents", "merge",
    "MergeConfig", "HCLMerger"
]
