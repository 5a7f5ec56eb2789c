from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from subtranslate.config import Settings, TranslationRunConfig
from subtranslate.exceptions import StageExecutionError
from subtranslate.formatters import JSONFormatter, SRTFormatter
from subtranslate.models.segment import TranscriptSegment, TranslatedSegment
from subtranslate.pipeline import LoggingProgressReporter, create_translation_pipeline
from subtranslate.utils.logging_setup import setup_logging

logger = logging.getLogger("subtranslate.scripts.run_local_translation")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Translate a transcript JSON file into subtitles.")
    parser.add_argument(
        "--transcript",
        required=True,
        help="Path to X.transcript.json (list of {start, end, text}, centiseconds)",
    )
    parser.add_argument("--run-config", required=True, help="Path to the run configuration JSON")
    parser.add_argument("--target-language", default=None, help="Override translate.target_lang")
    parser.add_argument("--out-dir", default=None, help="Output directory (defaults to transcript dir)")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL, e.g. DEBUG")
    return parser.parse_args()


def _load_transcript(path: Path) -> list[TranscriptSegment]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("segments", [])
    return [
        TranscriptSegment(start=int(item["start"]), end=int(item["end"]), text=str(item["text"]))
        for item in data
    ]


def _output_stem(path: Path) -> str:
    name = path.name
    for suffix in (".transcript.json", ".json"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def _write_outputs(out_dir: Path, stem: str, segments: list[TranslatedSegment]) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    for formatter in (JSONFormatter(), SRTFormatter()):
        path = out_dir / f"{stem}.{formatter.extension}"
        path.write_text(formatter.format(segments), encoding="utf-8")
        print(f"wrote {path} ({len(segments)} segments)")


async def _run() -> int:
    args = _parse_args()
    transcript_path = Path(args.transcript)
    if not transcript_path.exists():
        raise SystemExit(f"Transcript not found: {transcript_path}")
    run_config_path = Path(args.run_config)
    if not run_config_path.exists():
        raise SystemExit(f"Run config not found: {run_config_path}")

    settings = Settings()
    setup_logging(settings, level=args.log_level)

    run_config = TranslationRunConfig.model_validate_json(
        run_config_path.read_text(encoding="utf-8")
    )
    if args.target_language:
        run_config.translate.target_lang = str(args.target_language)

    segments = _load_transcript(transcript_path)
    out_dir = Path(args.out_dir) if args.out_dir else transcript_path.parent
    stem = _output_stem(transcript_path)

    pipeline = create_translation_pipeline(settings, run_config)
    async with pipeline:
        try:
            result = await pipeline.run(
                segments, progress_reporter=LoggingProgressReporter()
            )
        except StageExecutionError as exc:
            logger.error("translation failed: %s", exc)
            _write_outputs(out_dir, stem, exc.partial_output)
            return 1

    _write_outputs(out_dir, stem, result.segments)
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
