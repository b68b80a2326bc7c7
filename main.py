#!/usr/bin/env python3
"""Progressive Lesson Generator - Command Line Entry Point."""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

import config
from src.error_classifier import classify_error, support_message, user_message
from src.logger import setup_logger
from src.model_client import GenerativeModelClient
from src.models import CEFRLevel, LessonRequest
from src.pipeline import InputRejected, LessonGenerationError, LessonPipeline, save_lesson
from src.scheduler import ScheduleError
from src.session_store import SessionStore

EXIT_GENERATION_FAILED = 1
EXIT_INPUT_REJECTED = 2


def parse_sections(sections_str: str) -> list[str]:
    """Parse a comma-separated section list like 'warmup,reading'."""
    sections = [s.strip() for s in sections_str.split(",") if s.strip()]
    if not sections:
        raise ValueError(f"Invalid section list: {sections_str!r}")
    return sections


def build_request(args, store: SessionStore) -> LessonRequest:
    """Build the lesson request from CLI arguments or a saved session."""
    if args.resume:
        saved = store.load(args.session)
        if saved is None:
            raise ValueError(f"No saved session named '{args.session}'")
        return LessonRequest(**saved)

    if args.input:
        with open(args.input, "r", encoding="utf-8") as f:
            source_text = f.read()
    else:
        source_text = args.text

    return LessonRequest(
        source_text=source_text,
        level=CEFRLevel(args.level),
        lesson_type=args.lesson_type,
        target_language=args.target_language,
        sections=parse_sections(args.sections) if args.sections else None,
    )


def save_session(store: SessionStore, key: str | None, request: LessonRequest) -> None:
    if key:
        store.save(key, request.model_dump(mode="json"))


async def run(request: LessonRequest, output_path: Path) -> None:
    async with GenerativeModelClient() as client:
        pipeline = LessonPipeline(client)
        lesson = await pipeline.generate(
            request.source_text,
            request.level,
            request.lesson_type,
            request.target_language,
            sections=request.sections,
        )
    save_lesson(lesson, output_path)


def main():
    parser = argparse.ArgumentParser(
        description="Progressive Lesson Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate a B1 discussion lesson from a text file
  python main.py --input article.txt --level B1

  # Generate only some sections (dependencies are added automatically)
  python main.py --input article.txt --sections warmup,comprehension

  # Save the request under a session key, then rerun it later
  python main.py --input article.txt --session energy
  python main.py --resume --session energy
        """,
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--input", type=str, help="Path to a text file with the source content")
    source.add_argument("--text", type=str, help="Source content passed directly")
    parser.add_argument(
        "--level",
        type=str,
        default=config.DEFAULT_LEVEL,
        choices=[level.value for level in CEFRLevel],
        help=f"CEFR level of the learners (default: {config.DEFAULT_LEVEL})",
    )
    parser.add_argument(
        "--lesson-type",
        type=str,
        default=config.DEFAULT_LESSON_TYPE,
        help=f"Lesson type (default: {config.DEFAULT_LESSON_TYPE})",
    )
    parser.add_argument(
        "--target-language",
        type=str,
        default=config.DEFAULT_TARGET_LANGUAGE,
        help=f"Target language (default: {config.DEFAULT_TARGET_LANGUAGE})",
    )
    parser.add_argument(
        "--sections",
        type=str,
        help="Comma-separated sections to generate, e.g. 'warmup,vocabulary'. Defaults to all sections.",
    )
    parser.add_argument("--output", type=str, help="Output path for the lesson JSON")
    parser.add_argument("--session", type=str, help="Session key used to save the request")
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Rerun the request saved under --session",
    )

    args = parser.parse_args()

    if args.resume and not args.session:
        parser.error("--resume requires --session")
    if not args.resume and not (args.input or args.text):
        parser.error("one of --input or --text is required")

    logger = setup_logger()
    store = SessionStore()

    try:
        request = build_request(args, store)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid request: {e}")
        sys.exit(EXIT_GENERATION_FAILED)

    pipeline_start = datetime.now()
    if args.output:
        output_path = Path(args.output)
    else:
        output_path = config.get_lesson_output_path(pipeline_start, session_key=args.session)

    logger.info("=" * 60)
    logger.info("Progressive Lesson Generator")
    logger.info("=" * 60)
    logger.info(f"Level: {request.level.value}")
    logger.info(f"Lesson type: {request.lesson_type}")
    logger.info(f"Target language: {request.target_language}")
    if request.sections:
        logger.info(f"Sections: {', '.join(request.sections)}")
    if args.session:
        logger.info(f"Session: {args.session}{' (resumed)' if args.resume else ''}")
    logger.info(f"Output: {output_path}")
    logger.info("=" * 60)

    request = request.model_copy(update={"status": "generating", "error": None})
    save_session(store, args.session, request)

    try:
        asyncio.run(run(request, output_path))

        request = request.model_copy(
            update={"status": "completed", "output_path": str(output_path)}
        )
        save_session(store, args.session, request)

        logger.info("=" * 60)
        logger.info("Lesson generated successfully!")
        logger.info(f"Saved to: {output_path}")
        logger.info("=" * 60)

    except KeyboardInterrupt:
        logger.warning("Generation interrupted by user.")
        save_session(store, args.session, request.model_copy(update={"status": "pending"}))
        if args.session:
            logger.info(f"Request saved. Use --resume --session {args.session} to rerun.")
        sys.exit(EXIT_GENERATION_FAILED)
    except InputRejected as e:
        save_session(
            store, args.session, request.model_copy(update={"status": "failed", "error": e.reason})
        )
        logger.error(f"Content rejected: {e.reason}")
        for suggestion in e.suggestions:
            logger.info(f"  - {suggestion}")
        sys.exit(EXIT_INPUT_REJECTED)
    except (LessonGenerationError, ScheduleError) as e:
        save_session(
            store, args.session, request.model_copy(update={"status": "failed", "error": str(e)})
        )
        classified = classify_error(
            e,
            {
                "lesson_type": request.lesson_type,
                "content_length": len(request.source_text),
            },
        )
        message = user_message(classified)
        logger.error(f"{message['title']}: {message['message']}")
        for step in message["actionable_steps"]:
            logger.info(f"  - {step}")
        logger.info(f"Error ID: {message['error_id']}")
        logger.debug(support_message(classified)["technical_details"])
        sys.exit(EXIT_GENERATION_FAILED)
    except Exception as e:
        save_session(
            store, args.session, request.model_copy(update={"status": "failed", "error": str(e)})
        )
        logger.error(f"Pipeline error: {e}", exc_info=True)
        sys.exit(EXIT_GENERATION_FAILED)


if __name__ == "__main__":
    main()
