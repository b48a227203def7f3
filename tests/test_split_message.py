"""Unit tests for the Telegram split_message helper."""

from switchboard.platforms.telegram_bot import TELEGRAM_MAX_LENGTH, split_message


class TestShortText:
    def test_short_text_is_one_chunk(self):
        assert split_message("short message") == ["short message"]

    def test_empty_string(self):
        assert split_message("") == [""]

    def test_exactly_at_limit(self):
        text = "a" * TELEGRAM_MAX_LENGTH
        assert split_message(text) == [text]


class TestParagraphs:
    def test_splits_on_blank_line(self):
        """The blank-line separator stays with the first chunk."""
        first, second = "a" * 3000, "b" * 3000
        result = split_message(f"{first}\n\n{second}")
        assert result == [first + "\n\n", second]

    def test_short_paragraphs_are_merged(self):
        text = "\n\n".join(["A short paragraph."] * 5)
        assert split_message(text) == [text]

    def test_packs_paragraphs_greedily(self):
        # 2000 + 2 + 2000 fits, adding the third does not
        text = "\n\n".join(["a" * 2000, "b" * 2000, "c" * 2000])
        result = split_message(text)
        assert len(result) == 2
        assert result[0] == "a" * 2000 + "\n\n" + "b" * 2000 + "\n\n"
        assert all(len(chunk) <= TELEGRAM_MAX_LENGTH for chunk in result)

    def test_joining_chunks_restores_text(self):
        text = f"{'a' * 3000}\n\n{'b' * 3000}"
        assert "".join(split_message(text)) == text


class TestCodeBlocks:
    def test_small_code_block_kept_with_prose(self):
        code = '```python\nprint("hello")\n```'
        text = f"Example:\n\n{code}\n\nRun it."
        result = split_message(text)
        assert len(result) == 1
        assert code in result[0]

    def test_code_block_moves_to_next_chunk_whole(self):
        intro = "a" * 3800
        code = "```python\n" + "x = 1\n" * 100 + "```"
        result = split_message(f"{intro}\n\n{code}")
        assert result[-1] == code
        for chunk in result:
            assert chunk.count("```") % 2 == 0

    def test_oversized_code_block_is_refenced(self):
        lines = [f"line_{i} = " + "'x' * 80  # padding" for i in range(300)]
        code = "```python\n" + "\n".join(lines) + "\n```"
        assert len(code) > TELEGRAM_MAX_LENGTH

        result = split_message(code)
        assert len(result) >= 2
        for chunk in result:
            assert chunk.startswith("```python\n")
            assert chunk.endswith("```")
            assert len(chunk) <= TELEGRAM_MAX_LENGTH


class TestLineFallback:
    def test_long_paragraph_split_on_lines(self):
        text = "\n".join(f"line {i}: " + "a" * 80 for i in range(100))
        assert len(text) > TELEGRAM_MAX_LENGTH

        result = split_message(text)
        assert len(result) >= 2
        assert all(len(chunk) <= TELEGRAM_MAX_LENGTH for chunk in result)

    def test_text_without_newlines_is_cut(self):
        text = "A" * 10000
        result = split_message(text)
        assert [len(chunk) for chunk in result] == [4096, 4096, 1808]
        assert "".join(result) == text

    def test_custom_max_length(self):
        result = split_message("Hello World! " * 10, max_length=50)
        assert len(result) >= 2
        assert all(len(chunk) <= 50 for chunk in result)

    def test_mixed_content_with_small_limit(self):
        text = "Title\n\n```python\nprint('hi')\n```\n\nThe end"
        result = split_message(text, max_length=30)
        assert len(result) >= 2
        assert all(len(chunk) <= 30 for chunk in result)
