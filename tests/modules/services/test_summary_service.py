import pytest

from subtitle_translator.errors import InputMissingError
from subtitle_translator.services import SummaryService, TextTranslationService
from tests.helpers.pipeline import FakeSummaryClient

pytestmark = pytest.mark.services


def test_summarize_sends_subtitles_in_prompt(srt_factory):
    client = FakeSummaryClient("  A cooking show.\n")
    source = srt_factory(3, text="Add the salt")

    summary = SummaryService(client, language="English").summarize(source)

    assert summary == "A cooking show."
    assert "in English" in client.prompts[0]
    assert "Add the salt 3" in client.prompts[0]


def test_summarize_missing_file(tmp_path):
    with pytest.raises(InputMissingError):
        SummaryService(FakeSummaryClient(), language="English").summarize(tmp_path / "none.srt")


def test_text_translation_returns_stripped_reply():
    client = FakeSummaryClient(" Buongiorno \n")

    result = TextTranslationService(client, target_language="Italian").translate("Good morning")

    assert result == "Buongiorno"
    assert client.prompts[0].endswith("Good morning")


def test_text_translation_rejects_blank_text():
    client = FakeSummaryClient()

    with pytest.raises(ValueError):
        TextTranslationService(client, target_language="Italian").translate("  ")

    assert client.prompts == []
