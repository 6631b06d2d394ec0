"""Unit tests for TranscriptAccumulator."""

import pytest

from spokenword.session.transcript import TranscriptAccumulator


@pytest.mark.unit
class TestTranscriptAccumulator:

    def test_empty_transcript(self):
        transcript = TranscriptAccumulator()

        assert transcript.text == ""
        assert len(transcript) == 0

    def test_append_returns_full_text(self):
        transcript = TranscriptAccumulator()

        assert transcript.append("hello world") == "hello world"
        assert transcript.append("goodbye") == "hello world goodbye"

    def test_fragments_are_kept_verbatim_and_in_order(self):
        transcript = TranscriptAccumulator()
        for text in ["b", "a", "a", "Hello, there."]:
            transcript.append(text)

        assert transcript.fragments == ("b", "a", "a", "Hello, there.")
        assert transcript.text == "b a a Hello, there."

    def test_custom_delimiter(self):
        transcript = TranscriptAccumulator(delimiter="\n")
        transcript.append("first")
        transcript.append("second")

        assert transcript.text == "first\nsecond"

    def test_fragments_view_is_a_copy(self):
        transcript = TranscriptAccumulator()
        transcript.append("kept")

        fragments = transcript.fragments
        transcript.append("more")

        assert fragments == ("kept",)
