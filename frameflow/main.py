#!/usr/bin/env python3
"""
FrameFlow CLI

Command-line interface for device shell compositing.

Commands:
  shell     - Compose one screenshot into one device shell
  final     - Add background and text around a shelled image
  batch     - Compose a directory of screenshots into the selected shells and export
  template  - Manage the template library (add, list, remove, rotate)

Usage:
  frameflow template add "Pixel 8" frames/pixel8.png --region 60 120 960 2100 --radius 80
  frameflow shell screenshots/01_home.png --template Pixel_8 -o home_shell.png
  frameflow batch --bg-type blur --text "New look"
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from frameflow.commands.pipeline import ShellPipeline
from frameflow.config.project_config import WorkspaceConfig
from frameflow.config.shell_config import OptimizeConfig
from frameflow.errors import FrameFlowError
from frameflow.models import BackgroundSettings, BackgroundType, TemplateConfig, TextSettings
from frameflow.services.color_utils import parse_color
from frameflow.services.final_compositor import compose_final
from frameflow.services.image_io import encode_png, optimize_image
from frameflow.services.shell_compositor import compose_shell
from frameflow.services.sinks import get_sink
from frameflow.services.template_library import TemplateLibrary


# Console colors
RED = '\033[0;31m'
GREEN = '\033[0;32m'
YELLOW = '\033[1;33m'
MAGENTA = '\033[0;35m'
CYAN = '\033[0;36m'
NC = '\033[0m'


def _color(value: str) -> str:
    """Argument type: keep the colour string, reject what cannot be drawn"""
    try:
        parse_color(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))
    return value


def _add_background_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group('Background')
    group.add_argument(
        '--bg-type',
        choices=[t.value for t in BackgroundType],
        default=BackgroundType.TRANSPARENT.value,
        help='Background mode (default: transparent)'
    )
    group.add_argument('--blur', type=float, default=20, help='Background blur radius (default: 20)')
    group.add_argument('--bg-scale', type=float, default=100, help='Background zoom in percent (default: 100)')
    group.add_argument('--x-offset', type=float, default=0, help='Background shift, percent of width')
    group.add_argument('--y-offset', type=float, default=0, help='Background shift, percent of height')
    group.add_argument('--background', type=Path, help='Custom background image')


def _add_text_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group('Overlay Text')
    group.add_argument('--text', help='Overlay text')
    group.add_argument('--font-size', type=float, default=10, help='Font size, percent of shell width (default: 10)')
    group.add_argument('--text-x', type=float, default=50, help='Text centre, percent of width (default: 50)')
    group.add_argument('--text-y', type=float, default=90, help='Text centre, percent of height (default: 90)')
    group.add_argument('--color', type=_color, default='#ffffff', help='Text colour (default: #ffffff)')
    group.add_argument('--vertical', action='store_true', help='Stack characters vertically')
    group.add_argument('--font', type=Path, help='Font file (default: FRAMEFLOW_FONT or a bold system font)')


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with subcommands"""
    parser = argparse.ArgumentParser(
        prog='frameflow',
        description="Composite screenshots into device shells",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  shell     Compose one screenshot into one device shell
  final     Add background and text around a shelled image
  batch     Compose every screenshot into the selected shells and export
  template  Manage the template library

For command-specific help:
  %(prog)s shell --help
  %(prog)s batch --help
        """
    )

    # Global options
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--templates-dir',
        type=Path,
        help='Template library directory (default: FRAMEFLOW_TEMPLATES_DIR or ./templates)'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='Command to execute',
        required=True
    )

    # =====================================
    # SHELL SUBCOMMAND
    # =====================================
    shell_parser = subparsers.add_parser(
        'shell',
        help='Compose one screenshot into one device shell'
    )
    shell_parser.add_argument('screenshot', type=Path, help='Screenshot image')
    shell_parser.add_argument('--template', required=True, help='Template id, slug or name')
    shell_parser.add_argument('-o', '--output', type=Path, required=True, help='Output PNG')

    # =====================================
    # FINAL SUBCOMMAND
    # =====================================
    final_parser = subparsers.add_parser(
        'final',
        help='Add background and text around a shelled image'
    )
    final_parser.add_argument('shell', type=Path, help='Shelled image (output of "shell")')
    final_parser.add_argument(
        '--screenshot',
        type=Path,
        help='Original screenshot, blurred as background unless --background is given'
    )
    final_parser.add_argument('-o', '--output', type=Path, required=True, help='Output PNG')
    _add_background_options(final_parser)
    _add_text_options(final_parser)

    # =====================================
    # BATCH SUBCOMMAND
    # =====================================
    batch_parser = subparsers.add_parser(
        'batch',
        help='Compose every screenshot into the selected shells and export',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Selected templates, transparent background:
  %(prog)s

  # Two templates, blurred background and a caption:
  %(prog)s --template Pixel_8 --template iPhone_15 --bg-type blur --text "Hello"
        """
    )
    batch_parser.add_argument('--screenshots-dir', type=Path, help='Screenshots directory (default: ./screenshots)')
    batch_parser.add_argument('--output-dir', type=Path, help='Export directory (default: ./exports)')
    batch_parser.add_argument(
        '--template',
        action='append',
        dest='templates',
        help='Template id or slug (repeatable; default: selected templates)'
    )
    batch_parser.add_argument('--brand', help='File name prefix (default: FRAMEFLOW_BRAND or HONOR-Shell)')
    batch_parser.add_argument(
        '--no-optimize',
        action='store_true',
        help='Use screenshots at full resolution'
    )
    _add_background_options(batch_parser)
    _add_text_options(batch_parser)

    # =====================================
    # TEMPLATE SUBCOMMAND
    # =====================================
    template_parser = subparsers.add_parser('template', help='Manage the template library')
    template_commands = template_parser.add_subparsers(dest='template_command', required=True)

    add_parser = template_commands.add_parser('add', help='Add frame artwork as a template')
    add_parser.add_argument('name', help='Template name')
    add_parser.add_argument('frame', type=Path, help='Frame image (transparent screen area)')
    add_parser.add_argument(
        '--region',
        type=float,
        nargs=4,
        metavar=('X', 'Y', 'WIDTH', 'HEIGHT'),
        help='Screen region in frame pixels (default: last used or 80%% of the frame)'
    )
    add_parser.add_argument('--radius', type=float, default=0, help='Screen corner radius')

    template_commands.add_parser('list', help='List templates')

    remove_parser = template_commands.add_parser('remove', help='Delete a template')
    remove_parser.add_argument('key', help='Template id, slug or name')

    rotate_parser = template_commands.add_parser('rotate', help='Turn a template 90 degrees')
    rotate_parser.add_argument('key', help='Template id, slug or name')

    return parser


def _background_settings(args: argparse.Namespace) -> BackgroundSettings:
    custom_src = args.background
    if custom_src is not None:
        custom_src = optimize_image(custom_src, OptimizeConfig.BACKGROUND_MAX_DIMENSION, "PNG")
    return BackgroundSettings(
        type=BackgroundType(args.bg_type),
        blur=args.blur,
        scale=args.bg_scale,
        x_offset=args.x_offset,
        y_offset=args.y_offset,
        custom_src=custom_src,
    )


def _text_settings(args: argparse.Namespace) -> Optional[TextSettings]:
    if not args.text:
        return None
    return TextSettings(
        text=args.text,
        font_size=args.font_size,
        x=args.text_x,
        y=args.text_y,
        color=args.color,
        is_vertical=args.vertical,
    )


def _workspace(args: argparse.Namespace, **overrides) -> WorkspaceConfig:
    return WorkspaceConfig(templates_dir=args.templates_dir, **overrides)


def cmd_shell(args: argparse.Namespace) -> int:
    """Execute shell command"""
    library = TemplateLibrary(_workspace(args).templates_dir)
    template = library.find(args.template)

    image = compose_shell(args.screenshot, template)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_bytes(encode_png(image))

    print(f"{GREEN}✅ {args.output} ({image.width}x{image.height}){NC}")
    return 0


def cmd_final(args: argparse.Namespace) -> int:
    """Execute final command"""
    settings = _background_settings(args)
    font_path = args.font or _workspace(args).font_path
    image = compose_final(
        args.shell,
        settings.custom_src or args.screenshot,
        settings,
        text_config=_text_settings(args),
        font_path=str(font_path) if font_path else None
    )
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_bytes(encode_png(image))

    print(f"{GREEN}✅ {args.output} ({image.width}x{image.height}){NC}")
    return 0


def cmd_batch(args: argparse.Namespace) -> int:
    """Execute batch command"""
    workspace = _workspace(
        args,
        screenshots_dir=args.screenshots_dir,
        output_dir=args.output_dir,
        brand=args.brand,
        font_path=args.font
    )
    pipeline = ShellPipeline(
        workspace=workspace,
        template_keys=args.templates,
        settings=_background_settings(args),
        text_config=_text_settings(args),
        sink=get_sink('directory', output_dir=workspace.output_dir),
        optimize=not args.no_optimize
    )
    return pipeline.run()


def cmd_template(args: argparse.Namespace) -> int:
    """Execute template subcommands"""
    library = TemplateLibrary(_workspace(args).templates_dir)

    if args.template_command == 'add':
        config = None
        if args.region:
            x, y, width, height = args.region
            config = TemplateConfig(x=x, y=y, width=width, height=height, border_radius=args.radius)
        template = library.add_frame(args.name, args.frame, config)
        print(f"{GREEN}✅ Added '{template.name}' ({template.id}, slug {template.slug}){NC}")
        return 0

    if args.template_command == 'list':
        if not len(library):
            print(f"{YELLOW}⚠️  No templates in {library.index_path}{NC}")
            return 0
        for template in library.list():
            marker = '*' if template.id in library.active_ids else ' '
            config = template.config
            print(
                f"{marker} {CYAN}{template.id}{NC}  {template.name}  "
                f"{template.original_width}x{template.original_height}  "
                f"screen {config.x:g},{config.y:g} {config.width:g}x{config.height:g} "
                f"r{config.border_radius:g}  rotation {template.effective_rotation}"
            )
        return 0

    if args.template_command == 'remove':
        template = library.delete(library.find(args.key).id)
        print(f"{GREEN}✅ Removed '{template.name}'{NC}")
        return 0

    if args.template_command == 'rotate':
        template = library.rotate(args.key)
        print(f"{GREEN}✅ '{template.name}' rotation is now {template.effective_rotation}{NC}")
        return 0

    return 1


COMMANDS = {
    'shell': cmd_shell,
    'final': cmd_final,
    'batch': cmd_batch,
    'template': cmd_template,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        return COMMANDS[args.command](args)

    except FrameFlowError as e:
        print(f"{RED}❌ {e}{NC}")
        return 1
    except KeyboardInterrupt:
        print()
        print(f"{YELLOW}⚠️  Cancelled by user{NC}")
        return 130
    except Exception as e:
        logging.exception("Unexpected error")
        print(f"{MAGENTA}❌ Unexpected error: {e}{NC}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
