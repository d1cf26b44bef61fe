"""Command-line interface for one-off OCR extraction and markdown rendering.

Provides subcommands to extract text from a local image through the
configured OCR provider and to render markdown files as HTML.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from ocrnotes.errors import OCRNotesError
from ocrnotes.ocr.encoder import encode_image_file
from ocrnotes.ocr.gateway import OCRGateway, OCRResult
from ocrnotes.ui.render import markdown_to_html
from ocrnotes.utils.config import load_config
from ocrnotes.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def extract_file(file_path: Path, gateway: OCRGateway | None = None) -> OCRResult:
    """Run OCR on a local image file.

    Args:
        file_path: Path to the image.
        gateway: Gateway to use; built from the loaded config when omitted.

    Returns:
        Normalized OCR result.
    """
    if gateway is None:
        gateway = OCRGateway.from_config(load_config().ocr)
    image_base64 = encode_image_file(file_path)
    return asyncio.run(gateway.extract(image_base64))


def _write_output(content: str, output: Path | None) -> None:
    if output is None:
        print(content)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content)
    print(f"Output written to {output}")


def main(argv: list[str] | None = None, gateway: OCRGateway | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
        gateway: OCR gateway override for the ``extract`` command.
    """
    parser = argparse.ArgumentParser(
        description="OCR Notes command-line tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    extract_parser = subparsers.add_parser("extract", help="Extract text from an image")
    extract_parser.add_argument("file", type=Path, help="Image file to process")
    extract_parser.add_argument("-o", "--output", type=Path, help="Output file")
    extract_parser.add_argument(
        "--html", action="store_true", help="Write formatted HTML instead of markdown"
    )

    render_parser = subparsers.add_parser("render", help="Render a markdown file as HTML")
    render_parser.add_argument("file", type=Path, help="Markdown file to render")
    render_parser.add_argument("-o", "--output", type=Path, help="Output HTML file")

    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_file(args.file, gateway)
        except OCRNotesError as exc:
            detail = f" ({exc.details})" if exc.details else ""
            print(f"Error: {exc.message}{detail}", file=sys.stderr)
            sys.exit(1)
        if result.is_empty:
            print("No text found")
            return
        content = markdown_to_html(result.text) if args.html else result.text
        _write_output(content, args.output)
    elif args.command == "render":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        _write_output(markdown_to_html(args.file.read_text()), args.output)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
