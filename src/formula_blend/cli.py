import argparse
import logging
from typing import Optional

from PIL import Image

from formula_blend import expand
from formula_blend.composite import PixelSource, Rect, composite
from formula_blend.composite.pil_io import to_canvas
from formula_blend.exceptions import FormulaBlendError
from formula_blend.expression import compile
from formula_blend.presets import PresetStore
from formula_blend.version import __version__

logger = logging.getLogger(__name__)


def _pair(text: str) -> tuple[int, int]:
    try:
        x, y = (int(value) for value in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError("Expected two integers X,Y: %r" % text)
    return x, y


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="formula-blend command line utility.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Be more verbose.")
    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", required=True)

    apply_parser = subparsers.add_parser("apply", help="Blend two images")
    apply_parser.add_argument("base_file", help="Base layer image")
    apply_parser.add_argument("blend_file", help="Blend layer image")
    apply_parser.add_argument("output_file", help="Output image file")
    source = apply_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("-e", "--expr", help="Formula, e.g. '[rb*rs, gb*gs, bb*bs]'")
    source.add_argument("-p", "--preset", help="Name of a stored preset")
    apply_parser.add_argument(
        "--base-offset", type=_pair, default=(0, 0), help="Base position X,Y"
    )
    apply_parser.add_argument(
        "--blend-offset", type=_pair, default=(0, 0), help="Blend position X,Y"
    )
    apply_parser.add_argument(
        "--canvas", type=_pair, help="Canvas size W,H (default: fit both layers)"
    )
    apply_parser.add_argument("--presets", help="Preset file (for --preset)")

    check_parser = subparsers.add_parser("check", help="Validate a formula")
    check_parser.add_argument("expr", help="Formula")

    expand_parser = subparsers.add_parser("expand", help="Show the expanded formula")
    expand_parser.add_argument("expr", help="Formula")

    presets_parser = subparsers.add_parser("presets", help="Manage stored presets")
    presets_parser.add_argument("preset_file", help="Preset JSON file")
    actions = presets_parser.add_subparsers(dest="action", required=True)
    actions.add_parser("list", help="List presets")
    add_parser = actions.add_parser("add", help="Add a preset")
    add_parser.add_argument("name")
    add_parser.add_argument("expr")
    delete_parser = actions.add_parser("delete", help="Delete a preset by id")
    delete_parser.add_argument("id")
    actions.add_parser("export", help="Print the preset document")
    import_parser = actions.add_parser("import", help="Merge presets from a file")
    import_parser.add_argument("source_file")

    return parser.parse_args(argv)


def _apply(args: argparse.Namespace) -> None:
    if args.preset:
        if not args.presets:
            raise FormulaBlendError("--preset requires --presets FILE")
        expr = PresetStore(args.presets).find(args.preset).expr
    else:
        expr = args.expr
    engine = compile(expr)

    with Image.open(args.base_file) as image:
        base = PixelSource.frompil(image, *args.base_offset)
    with Image.open(args.blend_file) as image:
        blend = PixelSource.frompil(image, *args.blend_offset)
    if args.canvas:
        canvas = Rect.from_size(*args.canvas)
    else:
        bounds = base.rect.union(blend.rect)
        canvas = Rect(0, 0, max(bounds.right, 0), max(bounds.bottom, 0))

    result = composite(base, blend, canvas, engine)
    logger.info("Writing %dx%d result at %r", result.width, result.height, result.rect)
    to_canvas(result, canvas).save(args.output_file)


def _presets(args: argparse.Namespace) -> None:
    store = PresetStore(args.preset_file)
    if args.action == "list":
        items = store.load()
    elif args.action == "add":
        compile(args.expr)
        items = store.save(args.name, args.expr)
    elif args.action == "delete":
        items = store.delete(args.id)
    elif args.action == "export":
        print(store.export_text())
        return
    else:
        with open(args.source_file, "r", encoding="utf-8") as f:
            items = store.import_text(f.read())
    for item in items:
        print("%s\t%s\t%s" % (item.id, item.name, item.expr))


def main(argv: Optional[list[str]] = None) -> Optional[int]:
    args = parse_args(argv)

    logging.basicConfig(level=logging.WARNING)
    if args.verbose:
        logging.getLogger("formula_blend").setLevel(logging.DEBUG)
    else:
        logging.getLogger("formula_blend").setLevel(logging.INFO)

    try:
        if args.command == "apply":
            _apply(args)
        elif args.command == "check":
            engine = compile(args.expr)
            print("OK: %d channels (%s)" % (engine.arity, engine.expanded))
        elif args.command == "expand":
            print(expand(args.expr))
        elif args.command == "presets":
            _presets(args)
    except FormulaBlendError as e:
        logger.error(str(e))
        return 1

    return None
