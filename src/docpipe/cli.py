#!/usr/bin/env python3
"""
docpipe CLI - page-level PDF transformations from the terminal.

Usage:
    python -m docpipe <command> [options]

Commands:
    split               Split a PDF by page ranges or every N pages
    background          Paint a background color under page content
    text-color          Recolor text by rendering and recoloring pages
    strip-annotations   Remove annotations (all, or comments/highlights/links)
    form                Add form fields described in a JSON file
    images              Convert images to a PDF, one page per image
    ocr                 Recognize text on PDF pages
    info                Show PDF metadata and page count

Examples:
    docpipe split report.pdf -o parts/ --ranges "1-3,4-12"
    docpipe split report.pdf -o parts/ --every 5
    docpipe background report.pdf --color "#ffffe6" --pages 1-3
    docpipe text-color scan.pdf --color 0,0,160 --mode dark --threshold 100
    docpipe strip-annotations draft.pdf --links --highlights
    docpipe form blank.pdf --fields fields.json
    docpipe images a.jpg b.png -o out/ --page-size LETTER --margin 18
    docpipe ocr scan.pdf --languages eng,deu --format text
"""

import argparse
import json
import logging
import sys
import threading
from pathlib import Path

from docpipe.config import APP_DESCRIPTION, APP_VERSION, setup_logging
from docpipe.utils.i18n import _

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

# ---------------------------------------------------------------------------
# Argument value parsers
# ---------------------------------------------------------------------------


def parse_color(text: str) -> tuple[int, int, int]:
    """Parse ``#rrggbb`` or ``r,g,b`` (0-255 each)."""
    value = text.strip()
    try:
        if value.startswith("#"):
            if len(value) != 7:
                raise ValueError(value)
            rgb = tuple(int(value[i : i + 2], 16) for i in (1, 3, 5))
        else:
            parts = [int(p.strip()) for p in value.split(",")]
            if len(parts) != 3:
                raise ValueError(value)
            rgb = tuple(parts)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid color '{text}'. Use '#rrggbb' or 'r,g,b'."
        ) from None
    if any(not 0 <= c <= 255 for c in rgb):
        raise argparse.ArgumentTypeError(f"Color components must be within 0-255: '{text}'")
    return rgb  # type: ignore[return-value]


def _page_selection(text: str | None):
    from docpipe.utils.split_naming import parse_page_numbers

    if not text:
        return "all"
    return parse_page_numbers(text)


# ---------------------------------------------------------------------------
# Argument parser construction
# ---------------------------------------------------------------------------


def _add_io(parser: argparse.ArgumentParser, pages: bool = True) -> None:
    parser.add_argument("input", type=Path, help=_("Input PDF file"))
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=None,
        help=_("Directory for the output files. Default: next to the input."),
    )
    if pages:
        parser.add_argument(
            "--pages",
            type=str,
            default=None,
            help=_("Pages to process (e.g. '7', '3-10', '1,3,7'). Default: all."),
        )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with subcommands."""
    p = argparse.ArgumentParser(
        prog="docpipe",
        description=APP_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    p.add_argument("-v", "--verbose", action="store_true", help=_("Verbose logging (DEBUG)"))
    p.add_argument(
        "-f", "--force", action="store_true", help=_("Overwrite existing output files")
    )

    sub = p.add_subparsers(dest="command", help=_("Available commands"))

    # --- split ---
    split_p = sub.add_parser("split", help=_("Split a PDF by page ranges"))
    _add_io(split_p, pages=False)
    split_grp = split_p.add_mutually_exclusive_group(required=True)
    split_grp.add_argument(
        "--ranges", type=str, help=_("Page ranges, one output per range (e.g. '1-3,4,5-9')")
    )
    split_grp.add_argument("--every", type=int, metavar="N", help=_("Split every N pages"))

    # --- background ---
    bg_p = sub.add_parser("background", help=_("Add a background color"))
    _add_io(bg_p)
    bg_p.add_argument(
        "--color", type=parse_color, default=(255, 255, 230), help=_("Color, '#rrggbb' or 'r,g,b'")
    )
    bg_p.add_argument("--opacity", type=float, default=1.0, help=_("Opacity 0-1 (default: 1)"))

    # --- text-color ---
    tc_p = sub.add_parser("text-color", help=_("Change the color of text"))
    _add_io(tc_p)
    tc_p.add_argument(
        "--color", type=parse_color, default=(0, 0, 0), help=_("New text color (default: black)")
    )
    tc_p.add_argument(
        "--mode",
        choices=["dark", "light"],
        default=None,
        help=_("'dark' recolors dark text on light pages, 'light' the opposite"),
    )
    tc_p.add_argument("--threshold", type=float, default=None, help=_("Brightness threshold 0-255"))
    tc_p.add_argument("--scale", type=float, default=None, help=_("Render scale (default: 3)"))

    # --- strip-annotations ---
    sa_p = sub.add_parser("strip-annotations", help=_("Remove annotations"))
    _add_io(sa_p)
    sa_p.add_argument("--comments", action="store_true", help=_("Remove comments only"))
    sa_p.add_argument("--highlights", action="store_true", help=_("Remove highlights only"))
    sa_p.add_argument("--links", action="store_true", help=_("Remove links only"))

    # --- form ---
    form_p = sub.add_parser("form", help=_("Add form fields"))
    _add_io(form_p, pages=False)
    form_p.add_argument(
        "--fields", type=Path, required=True, help=_("JSON file with a list of field definitions")
    )

    # --- images ---
    img_p = sub.add_parser("images", help=_("Convert images to PDF"))
    img_p.add_argument("inputs", type=Path, nargs="+", help=_("Image files, in page order"))
    img_p.add_argument("-o", "--output-dir", type=Path, default=None, help=_("Output directory"))
    img_p.add_argument(
        "--page-size", type=str, default=None, help=_("A4, LETTER, LEGAL, A3, A5 or FIT")
    )
    img_p.add_argument(
        "--orientation", choices=["portrait", "landscape", "auto"], default=None
    )
    img_p.add_argument("--margin", type=float, default=None, help=_("Margin in points"))
    img_p.add_argument("--quality", type=int, default=None, help=_("JPEG quality 1-100"))
    img_p.add_argument(
        "--svg-scale", type=float, default=None, help=_("Render scale for SVG images, 1-4")
    )
    img_p.add_argument("--no-center", action="store_true", help=_("Anchor images at the margin"))
    img_p.add_argument(
        "--no-scale-to-fit", action="store_true", help=_("Never shrink images to fit")
    )

    # --- ocr ---
    ocr_p = sub.add_parser("ocr", help=_("Recognize text on PDF pages"))
    _add_io(ocr_p)
    ocr_p.add_argument(
        "--languages", type=str, default=None, help=_("Comma-separated codes, e.g. 'eng,deu'")
    )
    ocr_p.add_argument("--scale", type=float, default=None, help=_("Render scale (default: 2)"))
    ocr_p.add_argument(
        "--format",
        dest="output_format",
        choices=["text", "searchable-pdf"],
        default=None,
        help=_("Output format (default: text)"),
    )

    # --- info ---
    info_p = sub.add_parser("info", help=_("Show PDF metadata and page count"))
    info_p.add_argument("input", type=Path, help=_("Input PDF file"))

    return p


# ---------------------------------------------------------------------------
# Job runner
# ---------------------------------------------------------------------------


def _print_progress(percentage: float, message: str) -> None:
    print(f"\r[{percentage:5.1f}%] {message:<60}", end="", flush=True)


def _output_dir(args, fallback: Path) -> Path:
    from docpipe.utils.config_manager import get_config_manager

    if args.output_dir is not None:
        return args.output_dir
    configured = get_config_manager().get("output.directory", "")
    return Path(configured) if configured else fallback


def _execute(operation, files: list[Path], options, args, logger) -> int:
    """Run one job in a worker thread; Ctrl+C requests cancellation."""
    from docpipe.services.jobs import ErrorCode, InputFile, JobRequest, run_job
    from docpipe.utils.config_manager import get_config_manager

    out_dir = _output_dir(args, files[0].parent)
    request = JobRequest(
        files=[InputFile.from_path(f) for f in files],
        options=options,
        progress_callback=_print_progress,
    )

    outcomes = []
    worker = threading.Thread(
        target=lambda: outcomes.append(run_job(operation, request)), daemon=True
    )
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        request.cancel_event.set()
        print("\n" + _("Cancelling..."), file=sys.stderr)
        worker.join()
    print()

    outcome = outcomes[0]
    if not outcome.success:
        print(f"Error: {outcome.message}", file=sys.stderr)
        if outcome.details:
            print(f"       {outcome.details}", file=sys.stderr)
        if outcome.error_code is ErrorCode.PROCESSING_CANCELLED:
            return EXIT_CANCELLED
        return EXIT_FAILURE

    overwrite = args.force or get_config_manager().get("output.overwrite_existing", False)
    # Nothing is written unless every target is free
    if not overwrite:
        for output in outcome.outputs:
            target = out_dir / output.name
            if target.exists():
                print(f"Error: {target} already exists (use --force)", file=sys.stderr)
                return EXIT_FAILURE

    out_dir.mkdir(parents=True, exist_ok=True)
    for output in outcome.outputs:
        print(f"  → {output.write_to(out_dir)}")

    logger.info("%s", outcome.message)
    return EXIT_OK


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_split(args, logger) -> int:
    """Handle the 'split' command."""
    from docpipe.services.jobs import Operation
    from docpipe.services.pdf_operations import SplitOptions
    from docpipe.utils.exceptions import InvalidOptionsError

    try:
        options = SplitOptions(ranges=args.ranges or [], every_n=args.every)
    except InvalidOptionsError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE
    return _execute(Operation.SPLIT, [args.input], options, args, logger)


def _cmd_background(args, logger) -> int:
    """Handle the 'background' command."""
    from docpipe.services.jobs import Operation

    options = {
        "color": args.color,
        "opacity": args.opacity,
        "pages": _page_selection(args.pages),
    }
    return _execute(Operation.BACKGROUND_COLOR, [args.input], options, args, logger)


def _cmd_text_color(args, logger) -> int:
    """Handle the 'text-color' command."""
    from docpipe.services.jobs import Operation
    from docpipe.utils.config_manager import get_config_manager

    config = get_config_manager()
    options = {
        "color": args.color,
        "pages": _page_selection(args.pages),
        "mode": args.mode or config.get("text_color.mode", "dark"),
        "threshold": (
            args.threshold if args.threshold is not None else config.get("text_color.threshold")
        ),
        "scale": args.scale if args.scale is not None else config.get("text_color.scale"),
    }
    return _execute(Operation.TEXT_COLOR, [args.input], options, args, logger)


def _cmd_strip_annotations(args, logger) -> int:
    """Handle the 'strip-annotations' command."""
    from docpipe.services.jobs import Operation

    selective = args.comments or args.highlights or args.links
    options = {
        "remove_all": not selective,
        "remove_comments": args.comments,
        "remove_highlights": args.highlights,
        "remove_links": args.links,
        "pages": _page_selection(args.pages),
    }
    return _execute(Operation.REMOVE_ANNOTATIONS, [args.input], options, args, logger)


def _cmd_form(args, logger) -> int:
    """Handle the 'form' command."""
    from docpipe.services.jobs import Operation

    try:
        with open(args.fields, encoding="utf-8") as f:
            definitions = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: cannot read {args.fields}: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if isinstance(definitions, dict):
        definitions = definitions.get("fields", [])
    return _execute(Operation.FORM_FIELDS, [args.input], {"fields": definitions}, args, logger)


def _cmd_images(args, logger) -> int:
    """Handle the 'images' command."""
    from docpipe.services.jobs import Operation
    from docpipe.utils.config_manager import get_config_manager

    for p in args.inputs:
        if not p.exists():
            print(f"Error: {p} not found", file=sys.stderr)
            return EXIT_FAILURE

    config = get_config_manager()
    options = {
        "page_size": args.page_size or config.get("images.page_size", "A4"),
        "orientation": args.orientation or config.get("images.orientation", "auto"),
        "margin": args.margin if args.margin is not None else config.get("images.margin"),
        "quality": args.quality if args.quality is not None else config.get("images.quality"),
        "svg_scale": (
            args.svg_scale if args.svg_scale is not None else config.get("images.svg_scale")
        ),
        "center": not args.no_center,
        "scale_to_fit": not args.no_scale_to_fit,
    }
    return _execute(Operation.IMAGES_TO_PDF, list(args.inputs), options, args, logger)


def _cmd_ocr(args, logger) -> int:
    """Handle the 'ocr' command."""
    from docpipe.services.jobs import Operation
    from docpipe.utils.config_manager import get_config_manager

    config = get_config_manager()
    pages = _page_selection(args.pages)
    options = {
        "languages": args.languages or config.get("ocr.languages", ["eng"]),
        "scale": args.scale if args.scale is not None else config.get("ocr.scale"),
        "pages": [] if pages == "all" else pages,
        "output_format": args.output_format or config.get("ocr.output_format", "text"),
    }
    return _execute(Operation.OCR, [args.input], options, args, logger)


def _cmd_info(args, _logger) -> int:
    """Handle the 'info' command."""
    import pikepdf

    from docpipe.services.document import open_pdf
    from docpipe.utils.exceptions import EncryptedDocumentError

    size = args.input.stat().st_size
    print(f"File:       {args.input}")
    print(f"Size:       {size / (1024 * 1024):.2f} MB ({size:,} bytes)")
    try:
        with open_pdf(args.input.read_bytes(), args.input.name) as pdf:
            print(f"Pages:      {len(pdf.pages)}")
            print(f"Version:    PDF {pdf.pdf_version}")
            print(f"Encrypted:  {'Yes' if pdf.is_encrypted else 'No'}")
            for key in ("/Title", "/Author", "/Creator"):
                if key in pdf.docinfo:
                    print(f"{key[1:] + ':':<12}{pdf.docinfo[key]}")
    except EncryptedDocumentError:
        print("Encrypted:  Yes (password required)")
    except pikepdf.PdfError as e:
        print(f"Error: not a readable PDF: {e}", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_OK


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    setup_logging(args.verbose)
    logger = logging.getLogger("docpipe.cli")

    if hasattr(args, "input") and args.input and not args.input.exists():
        print(f"Error: {args.input} not found", file=sys.stderr)
        return EXIT_FAILURE

    handlers = {
        "split": _cmd_split,
        "background": _cmd_background,
        "text-color": _cmd_text_color,
        "strip-annotations": _cmd_strip_annotations,
        "form": _cmd_form,
        "images": _cmd_images,
        "ocr": _cmd_ocr,
        "info": _cmd_info,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args, logger)
    parser.print_help()
    return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
