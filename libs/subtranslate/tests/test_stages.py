from __future__ import annotations

import json

import pytest

from subtranslate.codecs import JSONArrayCodec, JSONSchemaCodec, PlainLinesCodec, TaggedLinesCodec
from subtranslate.config import FilterConfig
from subtranslate.exceptions import FilterDecodeError
from subtranslate.models.segment import TranscriptSegment, TranslatedSegment
from subtranslate.stages import (
    SUMMARY_SENTINEL,
    EditStage,
    FilterStage,
    LLMTranslationBackend,
    SummaryStage,
    TranslateStage,
)
from subtranslate.stages.filter import FILTER_SCHEMA, parse_filter_response
from subtranslate.utils.windowing import iter_windows


def _window(*texts: str):
    segments = [TranscriptSegment(start=i * 100, end=i * 100 + 90, text=t) for i, t in enumerate(texts)]
    return next(iter_windows(segments, 100))


def _translated(*pairs: tuple[str, str]) -> list[TranslatedSegment]:
    return [
        TranslatedSegment(start=i * 100, end=i * 100 + 90, original=o, translated=t)
        for i, (o, t) in enumerate(pairs)
    ]


def test_iter_windows_partitions_with_short_tail() -> None:
    segments = [TranscriptSegment(start=i, end=i + 1, text=str(i)) for i in range(5)]
    windows = list(iter_windows(segments, 2))
    assert [len(w) for w in windows] == [2, 2, 1]
    assert [w.offset for w in windows] == [0, 2, 4]
    assert [it.id for it in windows[1].batch_items()] == [0, 1]
    with pytest.raises(ValueError):
        list(iter_windows(segments, 0))


@pytest.mark.asyncio
async def test_translate_stage_prompt_carries_language_summary_and_batch(scripted_llm) -> None:
    llm = scripted_llm(['{"translations": [{"id": 0, "translated_text": "Bonjour"}]}'])
    backend = LLMTranslationBackend(llm, "gpt-4o", JSONSchemaCodec(), system_prompt_prefix="Anime.")
    stage = TranslateStage(backend)

    out = await stage.run(_window("Hello"), target_lang="French", summary="They met.")

    assert [s.translated for s in out] == ["Bonjour"]
    call = llm.calls[0]
    assert call.model == "gpt-4o"
    assert call.json_mode is True
    assert call.schema is JSONSchemaCodec.schema
    system, user = call.messages
    assert system.role == "system"
    assert system.content.startswith("Anime.\n")
    assert "French" in system.content
    assert user.content.startswith("Summary of previous conversation: They met.")
    assert '"text": "Hello"' in user.content


@pytest.mark.asyncio
async def test_translate_stage_fills_unmatched_ids_with_source_text(scripted_llm) -> None:
    llm = scripted_llm([json.dumps([{"id": 1, "translated_text": "Monde"}])])
    stage = TranslateStage(LLMTranslationBackend(llm, "m", JSONArrayCodec()))

    out = await stage.run(_window("Hello", "World", "Bye"), target_lang="fr", summary=SUMMARY_SENTINEL)

    assert [s.translated for s in out] == ["Hello", "Monde", "Bye"]
    assert [s.original for s in out] == ["Hello", "World", "Bye"]
    assert [(s.start, s.end) for s in out] == [(0, 90), (100, 190), (200, 290)]
    assert llm.calls[0].json_mode is False


@pytest.mark.asyncio
async def test_edit_stage_falls_back_to_prior_translation(scripted_llm) -> None:
    llm = scripted_llm(["Salut !"])
    stage = EditStage(llm, "m", PlainLinesCodec(), directive="Be casual.")
    segments = _translated(("Hello", "Bonjour."), ("World", "Le monde."))

    out = await stage.run(segments, target_lang="fr")

    assert [s.translated for s in out] == ["Salut !", "Le monde."]
    assert [s.original for s in out] == ["Hello", "World"]
    system = llm.calls[0].messages[0].content
    assert "Be casual." in system
    assert "DO NOT TRANSLATE" in system
    assert "Bonjour." in llm.calls[0].messages[1].content


@pytest.mark.asyncio
async def test_edit_stage_tagged_lines_keeps_unedited_ids(scripted_llm) -> None:
    llm = scripted_llm(["[1] Monde !"])
    stage = EditStage(llm, "m", TaggedLinesCodec(), directive="Add excitement.")

    out = await stage.run(_translated(("Hello", "Bonjour"), ("World", "Monde")), target_lang="fr")

    assert [s.translated for s in out] == ["Bonjour", "Monde !"]


@pytest.mark.asyncio
async def test_edit_stage_without_directive_makes_no_call(scripted_llm) -> None:
    llm = scripted_llm()
    stage = EditStage(llm, "m", JSONArrayCodec(), directive="  ")
    segments = _translated(("a", "b"))

    assert stage.enabled is False
    assert await stage.run(segments, target_lang="fr") == segments
    assert llm.calls == []


@pytest.mark.asyncio
async def test_filter_stage_removes_listed_ids(scripted_llm) -> None:
    llm = scripted_llm(['{"remove_ids": [1]}'])
    stage = FilterStage([FilterConfig(prompt="Remove filler words", threshold=0.5)], llm, "m")
    segments = _translated(("a", "A"), ("um", "euh"), ("c", "C"))

    out = await stage.run(segments)

    assert [s.original for s in out] == ["a", "c"]
    call = llm.calls[0]
    assert call.json_mode is True
    assert call.schema is FILTER_SCHEMA
    assert "1. Remove filler words (Confidence Threshold: 0.5)" in call.prompt
    assert '"text": "euh"' in call.prompt


@pytest.mark.asyncio
async def test_filter_stage_combines_all_conditions_in_one_request(scripted_llm) -> None:
    llm = scripted_llm(['{"remove_ids": []}'])
    stage = FilterStage(
        [FilterConfig(prompt="Remove ads"), FilterConfig(prompt="Remove credits", threshold=0.9)],
        llm,
        "m",
    )

    out = await stage.run(_translated(("a", "A"), ("b", "B")))

    assert len(out) == 2
    assert len(llm.calls) == 1
    assert "1. Remove ads (Confidence Threshold: 0.7)" in llm.calls[0].prompt
    assert "2. Remove credits (Confidence Threshold: 0.9)" in llm.calls[0].prompt


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["no idea", '{"drop": [0]}', '["0"]'])
async def test_filter_stage_fails_open_on_undecodable_reply(scripted_llm, reply: str) -> None:
    llm = scripted_llm([reply])
    stage = FilterStage([FilterConfig(prompt="x")], llm, "m")
    segments = _translated(("a", "A"), ("b", "B"))

    assert await stage.run(segments) == segments


def test_parse_filter_response_ignores_ids_outside_window() -> None:
    decision = parse_filter_response('```json\n{"remove_ids": [0, 5, -1, "2", true]}\n```', window_len=3)
    assert decision.remove_ids == frozenset({0, 2})
    with pytest.raises(FilterDecodeError):
        parse_filter_response("[]", window_len=3)


def test_parse_filter_response_rejects_fractional_ids() -> None:
    decision = parse_filter_response('{"remove_ids": [1.9, 2.0, "1.5"]}', window_len=3)
    assert decision.remove_ids == frozenset({2})


@pytest.mark.asyncio
async def test_summary_stage_rewrites_from_prior_summary_and_window(scripted_llm) -> None:
    llm = scripted_llm(["  Two friends greet each other.  "])
    stage = SummaryStage(llm, "m")

    out = await stage.run(SUMMARY_SENTINEL, _translated(("Hello", "Bonjour"), ("World", "Monde")))

    assert out == "Two friends greet each other."
    prompt = llm.calls[0].prompt
    assert f"Old Summary: {SUMMARY_SENTINEL}" in prompt
    assert "New Text: Bonjour Monde" in prompt


@pytest.mark.asyncio
async def test_summary_stage_keeps_prior_summary_on_empty_reply_or_window(scripted_llm) -> None:
    llm = scripted_llm(["   "])
    stage = SummaryStage(llm, "m")

    assert await stage.run("Earlier.", _translated(("a", "b"))) == "Earlier."
    assert await stage.run("Earlier.", []) == "Earlier."
    assert len(llm.calls) == 1
