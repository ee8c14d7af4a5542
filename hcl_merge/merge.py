"""
Block and attribute merge of two structured-config documents.

Blocks are matched by key (type plus labels). Matched blocks are rebuilt from
both sides with the second document winning attribute collisions, their
nested blocks merged by the same rule. Unmatched blocks pass through as-is:
first document's blocks keep their position, blocks only in the second
document are appended after them.
"""

import logging
from typing import Dict, List, Union

from .errors import DuplicateBlockError, MergeError, ParseError, SerializeError
from .models import Block, Document, DuplicatePolicy
from .parser import DocumentParser
from .writer import DocumentWriter


logger = logging.getLogger(__name__)


def block_key(block: Block) -> str:
    """Identity key of a block, exact match on type and ordered labels"""
    return block.key


def copy_attributes(source: Union[Block, Document], target: Union[Block, Document]):
    """
    Set every attribute of source on target, in ascending name order.

    Existing names on target keep their position and take the source value,
    new names are appended. Applying A then B yields A's names sorted, then
    names only B has sorted, with B's values on every collision.
    """
    for name in sorted(source.attributes):
        target.attributes[name] = source.attributes[name]


def _index_blocks(blocks: List[Block],
                  side: str,
                  policy: DuplicatePolicy) -> Dict[str, Block]:
    """Map block key -> block; later siblings overwrite earlier ones"""
    index: Dict[str, Block] = {}
    for block in blocks:
        key = block.key
        if key in index:
            if policy == DuplicatePolicy.ERROR:
                raise DuplicateBlockError(key, side)
            logger.warning(f"Duplicate block '{key}' in document {side}, last definition wins")
        index[key] = block
    return index


def merge_blocks(a_blocks: List[Block],
                 b_blocks: List[Block],
                 policy: DuplicatePolicy = DuplicatePolicy.LAST) -> List[Block]:
    """
    Merge two sibling block lists.

    Output order is a_blocks' order, with matches merged in place, followed
    by the blocks whose key is not in a_blocks, in b_blocks' order. The same
    rule applies independently at every nesting level.

    Unmatched blocks are moved into the result by reference; matched blocks
    are always newly constructed so neither input is modified.

    Raises:
        DuplicateBlockError: If policy is ERROR and either list repeats a key
    """
    a_index = _index_blocks(a_blocks, "A", policy)
    b_index = _index_blocks(b_blocks, "B", policy)

    out_blocks: List[Block] = []

    for a_block in a_blocks:
        b_block = b_index.get(a_block.key)

        if b_block is None:
            out_blocks.append(a_block)
            continue

        logger.debug(f"Merging block '{a_block.key}'")
        merged = Block(type=a_block.type, labels=list(a_block.labels))
        copy_attributes(a_block, merged)
        copy_attributes(b_block, merged)
        merged.children = merge_blocks(a_block.children, b_block.children, policy)
        out_blocks.append(merged)

    for b_block in b_blocks:
        if b_block.key not in a_index:
            logger.debug(f"Appending block '{b_block.key}' from document B")
            out_blocks.append(b_block)

    return out_blocks


def merge_documents(a: Document,
                    b: Document,
                    policy: DuplicatePolicy = DuplicatePolicy.LAST) -> Document:
    """
    Merge two parsed documents; b overrides a. Neither input is mutated.

    Raises:
        DuplicateBlockError: If policy is ERROR and a document repeats a key
        MergeError: If matched blocks are nested too deep to merge
    """
    out = Document()
    copy_attributes(a, out)
    copy_attributes(b, out)
    try:
        out.blocks = merge_blocks(a.blocks, b.blocks, policy)
    except RecursionError:
        raise MergeError("nesting too deep: matched blocks are nested deeper than "
                         "the merge can follow") from None
    return out


def merge(a: str, b: str, policy: DuplicatePolicy = DuplicatePolicy.LAST) -> str:
    """
    Merge two HCL documents given as text.

    Args:
        a: Base document
        b: Overriding document
        policy: Handling of duplicate sibling block keys

    Returns:
        Merged document text

    Raises:
        ParseError: If either input cannot be parsed
        SerializeError: If the merged tree cannot be rendered
        DuplicateBlockError: If policy is ERROR and a document repeats a key
        MergeError: If matched blocks are nested too deep to merge
    """
    try:
        a_document = DocumentParser.parse(a, source_name="<a>")
        b_document = DocumentParser.parse(b, source_name="<b>")
    except ParseError as e:
        raise e.wrap("error parsing hcl document") from e

    out = merge_documents(a_document, b_document, policy)

    try:
        return DocumentWriter.write(out)
    except SerializeError as e:
        raise SerializeError(f"error writing hcl document: {e}") from e
