"""CLI entry point for blindlabel."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path

from dotenv import load_dotenv

from .config import BlindLabelConfig, load_config
from .errors import InsufficientEvidenceError
from .extraction.allergens import AllergenMatcher, AllergenProfile, CommonAllergen
from .models import CapturedText, NutritionFacts, ProductRecord, SpeechSection
from .pipeline import ScanPipeline
from .sources import create_answerer
from .sources.response import suggested_questions
from .speech.assistant import QuestionAssistant
from .speech.capture import CaptureFlow, VoiceCaptureController
from .speech.narrator import ConsoleSpeechOutput, NarrationController
from .speech.planner import SpeechSectionPlanner


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="blindlabel",
        description="Read packaged food labels aloud: allergens first, then the rest",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to the configuration file (TOML)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # analyze
    analyze_parser = sub.add_parser("analyze", help="Analyze label text and/or a barcode")
    _add_scan_inputs(analyze_parser)
    analyze_parser.add_argument("--json", action="store_true", help="Output JSON")
    analyze_parser.add_argument(
        "--summary", action="store_true", help="Print the one-paragraph spoken summary"
    )
    analyze_parser.add_argument(
        "--narrate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Read the result aloud (default: speech.auto_play, off with --json)",
    )

    # sections
    sections_parser = sub.add_parser("sections", help="Show the planned speech sections")
    _add_scan_inputs(sections_parser)

    # ask
    ask_parser = sub.add_parser("ask", help="Ask a question about the product")
    ask_parser.add_argument(
        "question", nargs="?", default=None,
        help="Question to ask (prompted for when omitted)",
    )
    _add_scan_inputs(ask_parser)

    # allergens
    sub.add_parser("allergens", help="List the common allergens and their keywords")

    # demo
    sub.add_parser("demo", help="Narrate a built-in sample product")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    config = load_config(args.config)

    match args.command:
        case "analyze":
            asyncio.run(_cmd_analyze(config, args))
        case "sections":
            asyncio.run(_cmd_sections(config, args))
        case "ask":
            asyncio.run(_cmd_ask(config, args))
        case "allergens":
            _cmd_allergens()
        case "demo":
            _cmd_demo(config)


def _read_text_file(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise argparse.ArgumentTypeError(f"can't read {path}: {e}") from None


def _add_scan_inputs(parser: argparse.ArgumentParser) -> None:
    # --text and --text-file share one list so blocks keep command-line order.
    parser.add_argument(
        "--text", action="append", dest="blocks", metavar="TEXT",
        help="Recognized label text (repeatable, one per image)",
    )
    parser.add_argument(
        "--text-file", action="append", dest="blocks", metavar="FILE",
        type=_read_text_file,
        help="File with recognized label text (repeatable)",
    )
    parser.add_argument("--barcode", type=str, default=None, help="Product barcode")


async def _analyze(config: BlindLabelConfig, args) -> ProductRecord:
    captured = CapturedText.from_blocks(args.blocks or [])
    profile = config.allergens.profile()
    async with ScanPipeline.from_config(config) as pipeline:
        print("🔍 Analyzing product...", file=sys.stderr)
        return await pipeline.analyze(captured, args.barcode, profile)


async def _analyze_or_exit(config: BlindLabelConfig, args) -> ProductRecord:
    try:
        return await _analyze(config, args)
    except InsufficientEvidenceError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)


async def _cmd_analyze(config: BlindLabelConfig, args) -> None:
    record = await _analyze_or_exit(config, args)

    if args.json:
        print(json.dumps(record.to_dict(), ensure_ascii=False, indent=2))
    elif args.summary:
        print(record.summary())
    else:
        print(_display(record))

    narrate = args.narrate
    if narrate is None:
        narrate = config.reading.auto_play and not args.json
    if narrate:
        _narrate(SpeechSectionPlanner().plan(record, config.reading), config)


async def _cmd_sections(config: BlindLabelConfig, args) -> None:
    record = await _analyze_or_exit(config, args)
    sections = SpeechSectionPlanner().plan(record, config.reading)
    if not sections:
        print("Nothing to read for this product.")
        return
    for i, section in enumerate(sections, 1):
        print(f"{i}. [{section.title}] {section.content}")


class _PromptCaptureFlow(CaptureFlow):
    """Capture flow that asks for the question on the terminal."""

    def __init__(self, prompt: Callable[[str], str] | None = None) -> None:
        self._prompt = prompt or input

    def launch(self, on_complete: Callable[[str | None], None]) -> None:
        try:
            text = self._prompt("🎤 Ask a question about this product: ")
        except EOFError:
            on_complete(None)
            return
        on_complete(text)


async def _cmd_ask(config: BlindLabelConfig, args) -> None:
    record = await _analyze_or_exit(config, args)

    output = ConsoleSpeechOutput()
    narrator = NarrationController(output)
    assistant = QuestionAssistant(
        record,
        capture=VoiceCaptureController(
            capture_flow=_PromptCaptureFlow(), narrator=narrator
        ),
        narrator=narrator,
        answerer=create_answerer(config),
        speech_rate=config.reading.speech_rate,
    )
    try:
        if args.question:
            answer = await assistant.ask(args.question)
        else:
            answer = await assistant.listen_and_answer()
        output.run_until_idle()
    finally:
        narrator.shutdown()

    if answer is None:
        print("No question asked.")


def _cmd_allergens() -> None:
    print(f"Common allergens: {len(CommonAllergen)}")
    for allergen in CommonAllergen:
        print(f"  {allergen.display_name:<10} {', '.join(allergen.keywords)}")


def _cmd_demo(config: BlindLabelConfig) -> None:
    record = demo_record(config.allergens.profile())
    print(_display(record))
    print()
    _narrate(SpeechSectionPlanner().plan(record, config.reading), config)


def _narrate(sections: list[SpeechSection], config: BlindLabelConfig) -> None:
    output = ConsoleSpeechOutput()
    narrator = NarrationController(output)
    try:
        narrator.speak(sections, config.reading.speech_rate)
        output.run_until_idle()
    finally:
        narrator.shutdown()


def demo_record(profile: AllergenProfile) -> ProductRecord:
    """Sample cereal product used by the demo command."""
    ingredients = (
        "Whole grain oats", "Sugar", "Honey", "Salt", "Natural flavor", "Vitamin E",
    )
    return ProductRecord(
        product_name="Organic Whole Grain Cereal",
        ingredients=ingredients,
        major_ingredients=ingredients[:5],
        nutrition=NutritionFacts(
            calories="120 kcal",
            protein="3 g",
            total_fat="2 g",
            sugars="8 g",
            carbohydrates="24 g",
            fiber="3 g",
            sodium="140 mg",
        ),
        allergen_warnings=("Contains wheat", "May contain tree nuts"),
        detected_allergens=tuple(AllergenMatcher.match("wheat oats gluten", profile)),
        expiry="March 2025",
        usage_instructions="Store in a cool, dry place. Refrigerate after opening.",
        raw_text="Sample text...",
    )


def _display(record: ProductRecord) -> str:
    lines = [f"📦 {record.product_name or 'Unknown product'}"]
    if record.detected_allergens:
        lines.append(f"⚠️  Allergen alert: {', '.join(record.detected_allergens)}")
    if record.ingredients:
        lines.append(f"🥣 Ingredients ({len(record.ingredients)}):")
        lines.extend(f"   - {name}" for name in record.ingredients)
    if record.harmful_ingredients:
        lines.append("🧪 Potentially harmful:")
        lines.extend(f"   - {item}" for item in record.harmful_ingredients)
    if not record.nutrition.is_empty():
        lines.append("📊 Nutrition:")
        for label, value in (
            ("Serving size", record.nutrition.serving_size),
            ("Calories", record.nutrition.calories),
            ("Total fat", record.nutrition.total_fat),
            ("Saturated fat", record.nutrition.saturated_fat),
            ("Trans fat", record.nutrition.trans_fat),
            ("Cholesterol", record.nutrition.cholesterol),
            ("Sodium", record.nutrition.sodium),
            ("Carbohydrates", record.nutrition.carbohydrates),
            ("Fiber", record.nutrition.fiber),
            ("Sugars", record.nutrition.sugars),
            ("Protein", record.nutrition.protein),
        ):
            if value is not None:
                lines.append(f"   {label:<14} {value}")
    if record.allergen_warnings:
        lines.append(f"🏷  Label warnings: {'; '.join(record.allergen_warnings)}")
    if record.expiry:
        lines.append(f"📅 Best before: {record.expiry}")
    if record.usage_instructions:
        lines.append(f"🧊 {record.usage_instructions}")
    lines.append("")
    lines.append("💬 Suggested questions:")
    lines.extend(f"   - {q}" for q in suggested_questions(record))
    return "\n".join(lines)
