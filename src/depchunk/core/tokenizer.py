"""
Tokenizer module for chunk token counts.

Token counts on chunks are estimates used for sizing decisions. The default
estimator charges one token per four characters; tiktoken can be selected
when exact BPE counts are wanted.
"""

import math
from abc import ABC, abstractmethod
from typing import Optional

import tiktoken

CHARS_PER_TOKEN = 4


class TokenizerInterface(ABC):
    """Abstract interface for token counting."""

    @abstractmethod
    def count_tokens(self, text: str) -> int:
        """
        Count the number of tokens in the given text.

        Args:
            text: The text to tokenize.

        Returns:
            The number of tokens in the text.
        """
        pass


class EstimateTokenizer(TokenizerInterface):
    """Approximates tokens as ceil(len(text) / 4)."""

    def count_tokens(self, text: str) -> int:
        if not text:
            return 0
        return math.ceil(len(text) / CHARS_PER_TOKEN)


class TiktokenTokenizer(TokenizerInterface):
    """
    Tokenizer implementation using tiktoken library.

    Default encoding is 'cl100k_base'.
    """

    def __init__(self, encoding_name: str = "cl100k_base"):
        self._encoding_name = encoding_name
        self._encoding: Optional[tiktoken.Encoding] = None

    @property
    def encoding(self) -> tiktoken.Encoding:
        """Lazy-load the encoding to avoid initialization overhead."""
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self._encoding_name)
        return self._encoding

    def count_tokens(self, text: str) -> int:
        if not text:
            return 0
        return len(self.encoding.encode(text))


def estimate_tokens(text: str) -> int:
    """Estimate the token count of a text without a tokenizer instance."""
    return EstimateTokenizer().count_tokens(text)


def get_tokenizer(name: str = "estimate") -> TokenizerInterface:
    """
    Get a tokenizer by name.

    Args:
        name: 'estimate' or 'tiktoken'

    Raises:
        ValueError: If the name is unknown
    """
    if name == "estimate":
        return EstimateTokenizer()
    if name == "tiktoken":
        return TiktokenTokenizer(encoding_name="cl100k_base")
    raise ValueError(f"Unknown tokenizer: {name}")


def get_default_tokenizer() -> TokenizerInterface:
    """Get the default (estimating) tokenizer instance."""
    return EstimateTokenizer()
