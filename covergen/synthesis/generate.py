#!/usr/bin/env python3
import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import cv2
import imagehash
from PIL import Image
from pydantic import BaseModel, ValidationError

from covergen.observability.py_reporter import RunReporter, create_run_reporter
from covergen.synthesis.canvas import available_backends
from covergen.synthesis.config import AppConfig, load_config
from covergen.synthesis.formats import CropMode, derive_formats
from covergen.synthesis.parameters import VisualParameters
from covergen.synthesis.pipeline import generate_master_image
from covergen.synthesis.sources import ContentItem, ContentSourceError, create_source

TOOL = "covergen"
MANIFEST_VERSION = "1"


class FormatEntry(BaseModel):
    name: str
    widthPx: int
    heightPx: int
    file: str
    phash: str


class ManifestItem(BaseModel):
    id: str
    title: str
    metrics: dict
    parameters: VisualParameters
    formats: List[FormatEntry]


class Manifest(BaseModel):
    version: str
    cropMode: str
    backend: str
    masterSizePx: int
    items: List[ManifestItem]


def save_image(img: Image.Image, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path, format="PNG", compress_level=6, optimize=False)


def save_json(obj: BaseModel, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = obj.model_dump(exclude_none=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def make_reporter(config: AppConfig, run_id: Optional[str]) -> RunReporter:
    log_dir = Path(config.logging.log_dir) if config.logging.log_dir else None
    return create_run_reporter(
        TOOL,
        run_id=run_id,
        output_dir=log_dir,
        enable_console=config.logging.console,
        level=config.logging.log_level,
    )


def generate_item(item: ContentItem, config: AppConfig, reporter: RunReporter) -> Optional[ManifestItem]:
    if not item.content.strip():
        reporter.warning(f"Skipping item {item.id}: empty content", attrs={"item": item.id})
        return None

    gen = config.generation
    reporter.debug(f"Analyzing content for item {item.id}")
    result = generate_master_image(item.content, config.style_overrides(), size=gen.master_size, backend=gen.backend)
    m, p = result.metrics, result.parameters
    reporter.debug(
        f"Metrics: {m.word_count} words, {m.character_count} chars, {m.paragraph_count} paragraphs",
        attrs={"item": item.id},
    )
    reporter.debug(
        f"Visual params: seed={p.seed}, density={p.density:.2f}, palette={p.palette_index}",
        attrs={"item": item.id},
    )

    formats = config.resolve_formats()
    derived = derive_formats(result.master, formats, gen.crop_mode)
    entries: List[FormatEntry] = []
    for fmt in formats:
        img = derived[fmt.name]
        path = config.output_path(item.id, fmt.name)
        save_image(img, path)
        entries.append(
            FormatEntry(
                name=fmt.name,
                widthPx=img.width,
                heightPx=img.height,
                file=path.name,
                phash=str(imagehash.phash(img)),
            )
        )
        reporter.info(f"Generated {fmt.name} ({fmt.width}x{fmt.height}) for item {item.id}")

    return ManifestItem(
        id=item.id,
        title=item.title,
        metrics=m.model_dump(exclude={"clean_content", "words"}),
        parameters=p,
        formats=entries,
    )


def cmd_generate(args: argparse.Namespace, config: AppConfig) -> int:
    reporter = make_reporter(config, args.run_id)
    reporter.info(f"Source: {args.source or config.source.type}")
    try:
        source = create_source(args.source, config.source, args.path, args.url, reporter=reporter)
        source.validate()
        reporter.info(f"Provider: {source.name}")
        items = [source.get(args.id)] if args.id else source.all()
    except ContentSourceError as e:
        reporter.error("source", str(e), exc=e)
        reporter.finalize()
        return 1

    reporter.info(f"Found {len(items)} item(s) to process")
    successful = failed = images = 0
    entries: List[ManifestItem] = []
    with reporter.phase("render", total=len(items)) as phase:
        for item in items:
            try:
                entry = generate_item(item, config, reporter)
            except (ValueError, OSError, cv2.error) as e:
                failed += 1
                reporter.error("item", f"Failed to process item {item.id}: {e}", exc=e, attrs={"item": item.id})
            else:
                successful += 1
                if entry is not None:
                    images += len(entry.formats)
                    entries.append(entry)
            phase.tick()

    manifest = Manifest(
        version=MANIFEST_VERSION,
        cropMode=config.generation.crop_mode,
        backend=config.generation.backend,
        masterSizePx=config.generation.master_size,
        items=entries,
    )
    save_json(manifest, Path(config.output.directory) / "manifest.json")

    reporter.summary(total=len(items), successful=successful, failed=failed, images=images)
    reporter.finalize({"images": images})
    return 1 if failed else 0


def cmd_list(args: argparse.Namespace, config: AppConfig) -> int:
    reporter = make_reporter(config, args.run_id)
    try:
        source = create_source(args.source, config.source, args.path, args.url, reporter=reporter)
        source.validate()
        items = source.all()
    except ContentSourceError as e:
        reporter.error("source", str(e), exc=e)
        reporter.finalize()
        return 1
    print(f"\nFound {len(items)} item(s):\n")
    for index, item in enumerate(items, start=1):
        print(f"{index}. [{item.id}] {item.title}")
        print(f"   Content length: {len(item.content)} characters\n")
    reporter.finalize({"items": len(items)})
    return 0


def cmd_config(args: argparse.Namespace, config: AppConfig) -> int:
    print(json.dumps(config.model_dump(mode="json"), indent=2))
    return 0


def _add_source_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--source", choices=["file", "directory", "wordpress"], default=None)
    parser.add_argument("--path", default=None, help="File or directory path")
    parser.add_argument("--url", default=None, help="WordPress site URL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=TOOL, description="Generate abstract cover images from text content")
    parser.add_argument("--config", type=Path, default=None, help="Path to JSON config file")
    parser.add_argument("--run-id", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate images from content")
    _add_source_args(gen)
    which = gen.add_mutually_exclusive_group(required=True)
    which.add_argument("--id", default=None, help="Single item ID")
    which.add_argument("--all", action="store_true", help="Process all items")
    gen.add_argument("--crop-mode", choices=[m.value for m in CropMode], default=None)
    gen.add_argument("--backend", choices=available_backends(), default=None)
    gen.add_argument("--output-dir", default=None)
    gen.set_defaults(handler=cmd_generate)

    lst = sub.add_parser("list", help="List available content items")
    _add_source_args(lst)
    lst.set_defaults(handler=cmd_list)

    cfg = sub.add_parser("config", help="Show the effective configuration")
    cfg.set_defaults(handler=cmd_config)
    return parser


def cli_overrides(args: argparse.Namespace) -> dict:
    return {
        "generation": {
            "crop_mode": getattr(args, "crop_mode", None),
            "backend": getattr(args, "backend", None),
        },
        "output": {"directory": getattr(args, "output_dir", None)},
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = load_config(args.config, cli_overrides(args))
    except (OSError, ValueError, ValidationError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    return args.handler(args, config)


if __name__ == "__main__":
    raise SystemExit(main())
