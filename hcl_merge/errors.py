"""
Exception hierarchy for parsing, merging and writing HCL documents.
"""

from typing import Optional


class HCLMergeError(Exception):
    """Base class for all hcl_merge errors"""


class ParseError(HCLMergeError):
    """Input text is not a valid structured-config document"""

    def __init__(self,
                 summary: str,
                 detail: str = "",
                 line: int = 0,
                 column: int = 0,
                 source_name: str = "<input>",
                 message: Optional[str] = None):
        self.summary = summary
        self.detail = detail
        self.line = line
        self.column = column
        self.source_name = source_name
        super().__init__(message or self.diagnostic)

    @property
    def diagnostic(self) -> str:
        """Diagnostic in the form '<source>:<line>,<col>: <summary>; <detail>'"""
        text = f"{self.source_name}:{self.line},{self.column}: {self.summary}"
        if self.detail:
            text += f"; {self.detail}"
        return text

    def wrap(self, prefix: str) -> "ParseError":
        """Return a copy of this error with a prefixed message"""
        return ParseError(
            self.summary,
            detail=self.detail,
            line=self.line,
            column=self.column,
            source_name=self.source_name,
            message=f"{prefix}: {self.diagnostic}"
        )


class SerializeError(HCLMergeError):
    """Document tree could not be rendered to text"""


class MergeError(HCLMergeError):
    """Merge could not be completed under the active policy"""


class DuplicateBlockError(MergeError):
    """Two sibling blocks in one document share a block key"""

    def __init__(self, key: str, side: str):
        self.key = key
        self.side = side
        super().__init__(f"duplicate block '{key}' in document {side}")


class ConfigError(HCLMergeError, ValueError):
    """Invalid merge configuration"""
