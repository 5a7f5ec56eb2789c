"""Pipeline factories."""

from __future__ import annotations

import logging

from subtranslate.codecs import select_codec
from subtranslate.config import (
    EditConfig,
    LLMEngineConfig,
    LocalEngineConfig,
    Settings,
    TranslationRunConfig,
    split_model_ref,
)
from subtranslate.exceptions import ConfigurationError
from subtranslate.pipeline.orchestrator import TranslationPipeline
from subtranslate.providers.llm.base import LLMProvider
from subtranslate.providers.local import LocalTranslator
from subtranslate.providers.registry import get_llm_provider
from subtranslate.stages import (
    EditStage,
    FilterStage,
    LLMTranslationBackend,
    LocalTranslationBackend,
    SummaryStage,
    TranslateStage,
    TranslationBackend,
)

logger = logging.getLogger(__name__)


class _ProviderPool:
    """One provider client per provider id for the whole run."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._providers: dict[str, LLMProvider] = {}

    def get(self, provider_id: str) -> LLMProvider:
        if provider_id not in self._providers:
            cfg = self._settings.provider(provider_id)
            self._providers[provider_id] = get_llm_provider(cfg, self._settings)
        return self._providers[provider_id]

    def all(self) -> list[LLMProvider]:
        return list(self._providers.values())


def _resolve_filter_model(settings: Settings, edit: EditConfig) -> str:
    """First condition override whose provider exists, else `edit.default_model`."""
    default_ref = edit.default_model
    for cond in edit.filters or []:
        if not cond.llm:
            continue
        provider_id, _ = split_model_ref(cond.llm)
        if settings.has_provider(provider_id):
            return cond.llm
        logger.warning(
            "filter provider %r not configured, using default %r", provider_id, default_ref
        )
        break
    return default_ref


def create_translation_pipeline(
    settings: Settings,
    run_config: TranslationRunConfig,
    *,
    local_translator: LocalTranslator | None = None,
) -> TranslationPipeline:
    """Build a pipeline for `run_config`.

    Every referenced provider is resolved here, so an unknown provider id
    raises `ConfigurationError` before any request is sent.
    """
    pool = _ProviderPool(settings)
    translate_cfg = run_config.translate
    engine = translate_cfg.engine

    backend: TranslationBackend
    summarizer: SummaryStage | None = None
    match engine:
        case LLMEngineConfig():
            provider_id, model = split_model_ref(engine.model)
            llm = pool.get(provider_id)
            backend = LLMTranslationBackend(
                llm,
                model,
                select_codec(engine.codec, llm.config),
                system_prompt_prefix=engine.system_prompt or "",
            )
            summarizer = SummaryStage(llm, model)
        case LocalEngineConfig():
            if local_translator is None:
                raise ConfigurationError("Local translation engine requires a local translator")
            backend = LocalTranslationBackend(
                local_translator, source_lang=translate_cfg.source_hint
            )
        case _:
            raise ConfigurationError(f"Unknown translate engine: {engine!r}")

    edit_stage: EditStage | None = None
    filter_stage: FilterStage | None = None
    edit_cfg = run_config.edit
    if edit_cfg is not None:
        # The default model is resolved only by the stages that end up using it.
        if edit_cfg.directive:
            provider_id, model = split_model_ref(edit_cfg.default_model)
            default_llm = pool.get(provider_id)
            codec_kind = engine.codec if isinstance(engine, LLMEngineConfig) else None
            edit_codec = select_codec(codec_kind, default_llm.config)
            edit_stage = EditStage(default_llm, model, edit_codec, directive=edit_cfg.directive)
        if edit_cfg.filters:
            filter_provider_id, filter_model = split_model_ref(
                _resolve_filter_model(settings, edit_cfg)
            )
            filter_stage = FilterStage(
                edit_cfg.filters, pool.get(filter_provider_id), filter_model
            )

    logger.info(
        "translation pipeline ready (engine=%s, window=%d, edit=%s, filters=%d)",
        backend.name,
        engine.window,
        edit_stage is not None,
        len(filter_stage.conditions) if filter_stage else 0,
    )
    return TranslationPipeline(
        translate=TranslateStage(backend),
        target_lang=translate_cfg.target_lang,
        window_size=engine.window,
        edit=edit_stage,
        filter=filter_stage,
        summarizer=summarizer,
        providers=pool.all(),
    )
