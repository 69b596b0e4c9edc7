"""
Tests for reversible markup tokenization.
"""

import pytest
from forum_translator.services.markup_protector import (
    MarkupProtector,
    protect,
    restore,
    TOKEN_PREFIX,
    TOKEN_SUFFIX,
)


class TestProtect:

    def test_plain_text_untouched(self):
        text, tokens = protect('Just a normal sentence.')
        assert text == 'Just a normal sentence.'
        assert tokens == {}

    def test_empty_input(self):
        assert protect('') == ('', {})
        assert protect(None) == ('', {})

    def test_fenced_code_becomes_one_token(self):
        source = 'Before\n```python\nprint("hi")\n```\nAfter'
        text, tokens = protect(source)

        assert 'print' not in text
        assert list(tokens.values()) == ['```python\nprint("hi")\n```']
        assert text.startswith('Before\n' + TOKEN_PREFIX)
        assert text.endswith(TOKEN_SUFFIX + '\nAfter')

    def test_quote_containing_fence_is_single_token(self):
        source = '[quote="alice"]\n```\ncode\n```\n[/quote]\nreply'
        text, tokens = protect(source)

        assert len(tokens) == 1
        assert list(tokens.values())[0].startswith('[quote="alice"]')
        assert text == f'{TOKEN_PREFIX}0{TOKEN_SUFFIX}\nreply'

    def test_inline_structures(self):
        source = 'Ask @alice about `make test` at https://example.com :smile:'
        text, tokens = protect(source)

        assert set(tokens.values()) == {'`make test`', 'https://example.com', '@alice', ':smile:'}
        assert 'alice' not in text
        assert 'Ask' in text and 'about' in text

    def test_markdown_link_is_one_token(self):
        text, tokens = protect('Read [the docs](https://example.com/docs) first')
        assert list(tokens.values()) == ['[the docs](https://example.com/docs)']

    def test_bbcode_details_and_code(self):
        source = '[details="Spoiler"]secret[/details] and [code]x = 1[/code]'
        _, tokens = protect(source)
        assert set(tokens.values()) == {'[details="Spoiler"]secret[/details]', '[code]x = 1[/code]'}


class TestRestore:

    @pytest.mark.parametrize('source', [
        'Hello **bold** world',
        'See `code` and [link](https://x.org) by @bob :tada:',
        '你好 @李雷 看看 https://例子.cn/路径 :smile: 谢谢',
        '[quote]\n```\nnested\n```\n[/quote]\n[code]a[/code] `b` @c',
        '',
    ])
    def test_restore_inverts_protect(self, source):
        text, tokens = protect(source)
        assert restore(text, tokens) == source

    def test_restore_survives_reordering(self):
        text, tokens = protect('@alice thanks @bob')
        first, second = list(tokens)
        # A translation may move placeholders around
        translated = f'Gracias {second}, {first}'
        assert restore(translated, tokens) == 'Gracias @bob, @alice'

    def test_restore_with_no_tokens(self):
        assert MarkupProtector.restore('hola', {}) == 'hola'
        assert MarkupProtector.restore(None, {}) == ''
