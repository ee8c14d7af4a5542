"""
Configured merge front door with logging and Prometheus metrics.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from prometheus_client import CollectorRegistry, Counter, Histogram

from .config import MergeConfig
from .errors import ParseError, SerializeError
from .merge import merge_documents
from .models import Document
from .parser import DocumentParser
from .writer import DocumentWriter


logger = logging.getLogger(__name__)


class HCLMerger:
    """
    Merges pairs of HCL documents under a MergeConfig.

    Features:
    - Text, parsed document and file inputs
    - Duplicate block key policy from configuration
    - Prometheus counters for outcomes and block origins
    """

    def __init__(self,
                 config: Optional[MergeConfig] = None,
                 registry: Optional[CollectorRegistry] = None):
        """
        Initialize merger.

        Args:
            config: Merge configuration (defaults to MergeConfig())
            registry: Prometheus registry for metrics; a private registry
                is used when omitted so instances never collide
        """
        self.config = config or MergeConfig()
        self.registry = registry if registry is not None else CollectorRegistry()
        self._stats: Dict[str, int] = {
            'ok': 0,
            'parse_error': 0,
            'serialize_error': 0,
            'merge_error': 0,
        }

        if self.config.metrics_enabled:
            self._init_metrics()

    def _init_metrics(self):
        """Initialize Prometheus metrics"""
        self.merge_counter = Counter(
            'hcl_merge',
            'Document merges by outcome',
            labelnames=['status'],
            registry=self.registry
        )

        self.merge_duration = Histogram(
            'hcl_merge_duration_seconds',
            'Time spent parsing, merging and writing a document pair',
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1),
            registry=self.registry
        )

        self.block_counter = Counter(
            'hcl_merge_blocks',
            'Top-level blocks by origin',
            labelnames=['origin'],
            registry=self.registry
        )

    def merge(self, a: str, b: str) -> str:
        """
        Merge two documents given as text; b overrides a.

        Raises:
            ParseError: If either input cannot be parsed
            SerializeError: If the merged tree cannot be rendered
            MergeError: Under the 'error' duplicate policy, or when matched
                blocks are nested too deep
        """
        return self._merge(
            lambda: DocumentParser.parse(a, source_name="<a>"),
            lambda: DocumentParser.parse(b, source_name="<b>")
        )

    def _merge(self,
               load_a: Callable[[], Document],
               load_b: Callable[[], Document],
               output: Optional[Union[str, Path]] = None) -> str:
        """Parse both sides, merge and write, recording the outcome"""
        start = time.perf_counter()
        # Anything not reaching the end counts against the merge itself
        status = 'merge_error'
        try:
            try:
                a_document = load_a()
                b_document = load_b()
            except ParseError as e:
                status = 'parse_error'
                raise e.wrap("error parsing hcl document") from e

            out = self.merge_documents(a_document, b_document)

            try:
                content = DocumentWriter.write(out, output)
            except SerializeError as e:
                status = 'serialize_error'
                raise SerializeError(f"error writing hcl document: {e}") from e

            status = 'ok'
            return content
        finally:
            self._record(status, time.perf_counter() - start)

    def merge_documents(self, a: Document, b: Document) -> Document:
        """Merge two parsed documents under the configured duplicate policy"""
        out = merge_documents(a, b, self.config.duplicate_blocks)

        if self.config.metrics_enabled:
            a_keys = {block.key for block in a.blocks}
            b_keys = {block.key for block in b.blocks}
            for block in out.blocks:
                if block.key in a_keys and block.key in b_keys:
                    origin = 'matched'
                elif block.key in a_keys:
                    origin = 'a_only'
                else:
                    origin = 'b_only'
                self.block_counter.labels(origin=origin).inc()

        logger.debug(f"Merged {len(a.blocks)} + {len(b.blocks)} top-level blocks "
                     f"into {len(out.blocks)}")
        return out

    def merge_files(self,
                    a_path: Union[str, Path],
                    b_path: Union[str, Path],
                    output: Optional[Union[str, Path]] = None) -> str:
        """
        Merge two HCL files.

        Parse errors name the file that failed.

        Args:
            a_path: Base document file
            b_path: Overriding document file
            output: Optional file path for the merged document

        Returns:
            Merged document text
        """
        content = self._merge(
            lambda: DocumentParser.from_file(a_path),
            lambda: DocumentParser.from_file(b_path),
            output
        )
        logger.info(f"Merged {a_path} with {b_path}")
        return content

    def stats(self) -> Dict[str, int]:
        """Get merge outcome counts observed by this merger"""
        return dict(self._stats)

    def _record(self, status: str, duration: float):
        self._stats[status] += 1
        if self.config.metrics_enabled:
            self.merge_counter.labels(status=status).inc()
            self.merge_duration.observe(duration)
