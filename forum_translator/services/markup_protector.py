"""Reversible tokenization of markup an LLM must not touch.

Code, quotes, links, mentions, URLs and emoji are swapped for opaque
tokens before the text goes to the model and swapped back afterwards.
"""

import re

# Block structures. These are combined into one alternation so that the
# block starting first wins: a quote containing a code fence is a single
# token, not a quote wrapped around a fence token.
BLOCK_PATTERNS = [
    r'^```[\s\S]*?^```',                       # fenced code
    r'\[code\][\s\S]*?\[/code\]',              # BBCode code
    r'\[quote[^\]]*\][\s\S]*?\[/quote\]',      # BBCode quote
    r'\[details[^\]]*\][\s\S]*?\[/details\]',  # BBCode details
]

# Inline structures, applied one after another once blocks are protected
INLINE_PATTERNS = [
    re.compile(r'`[^`\n]+`'),                  # inline code
    re.compile(r'\[([^\]]*)\]\(([^)]+)\)'),    # markdown links
    re.compile(r'https?://\S+'),               # bare URLs
    re.compile(r'@[\w.-]+'),                   # @mentions
    re.compile(r':[a-z0-9_+-]+:'),             # emoji shortcodes
]

_BLOCK_PATTERN = re.compile('|'.join(f'(?:{p})' for p in BLOCK_PATTERNS), re.MULTILINE)

TOKEN_PREFIX = '⟦TK'
TOKEN_SUFFIX = '⟧'


class MarkupProtector:
    """Replaces protectable spans of one text with numbered tokens."""
    
    def __init__(self, text: str):
        self.text = text or ''
        self.tokens = {}
        self._counter = 0
    
    def protect(self) -> tuple[str, dict]:
        """Return (protected_text, token_map). The map keeps insertion order."""
        result = self._tokenize(self.text, _BLOCK_PATTERN)
        for pattern in INLINE_PATTERNS:
            result = self._tokenize(result, pattern)
        return result, self.tokens
    
    @staticmethod
    def restore(text: str, tokens: dict) -> str:
        """Put the original spans back.
        
        Later tokens are restored first, so a token whose original text
        contains an earlier token is expanded before the inner one.
        """
        result = text or ''
        for key, value in reversed(list(tokens.items())):
            result = result.replace(key, value)
        return result
    
    def _tokenize(self, text: str, pattern) -> str:
        def replace(match):
            key = f'{TOKEN_PREFIX}{self._counter}{TOKEN_SUFFIX}'
            self.tokens[key] = match.group(0)
            self._counter += 1
            return key
        
        return pattern.sub(replace, text)


def protect(text: str) -> tuple[str, dict]:
    return MarkupProtector(text).protect()


def restore(text: str, tokens: dict) -> str:
    return MarkupProtector.restore(text, tokens)
