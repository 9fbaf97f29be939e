"""
The ``readmet`` command: extracts the ED2K hash and meta tags from ``.part.met`` files.

Run ``readmet --help`` for the list of options.
"""

import sys
import json
import logging

from argparse import ArgumentParser, Namespace
from dataclasses import replace
from typing import List, Optional, TextIO

import colorama

from atmfjstc.lib.cli_utils.errors import pretty_unhandled, descriptive_errors, fail
from atmfjstc.lib.part_met import PartMetFile, PartMetError, __version__
from atmfjstc.lib.part_met.cli.render import DisplayOptions, render


PROGRAM_NAME = 'readmet'
BASED_ON = "ed2k .part.met file format document by Ivan Montes (Dr.Slump)"


def build_arg_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog=PROGRAM_NAME,
        description="Extract ED2K hash and meta tags from .part.met files",
    )

    parser.add_argument('file_arg', nargs='?', metavar='FILE', help="The .part.met file to analyze")
    parser.add_argument('-f', '--file', dest='file', metavar='FILE', help="Specify the .part.met file to analyze")

    group = parser.add_argument_group("display options")
    group.add_argument('-a', '--all', action='store_true', help="Show all tags (default)")
    group.add_argument('-s', '--special', action='store_true', help="Show only special tags")
    group.add_argument('-g', '--gap', action='store_true', help="Show only gap tags")
    group.add_argument('-t', '--standard', action='store_true', help="Show only standard tags")
    group.add_argument('-u', '--unknown', action='store_true', help="Show unknown tags")

    group = parser.add_argument_group("specific fields (script-friendly, raw output)")
    group.add_argument('-n', '--name', action='store_true', help="Show filename only")
    group.add_argument('-S', '--size', action='store_true', help="Show file size only")
    group.add_argument('-d', '--date', action='store_true', help="Show last seen complete date only")
    group.add_argument('-p', '--progress', action='store_true', help="Show download progress only")
    group.add_argument('-e', '--hash', action='store_true', help="Show ED2K hash only")
    group.add_argument('-m', '--metversion', action='store_true', help="Show .part.met version only (14.0 or 14.1)")
    group.add_argument('-c', '--tagcount', action='store_true', help="Show number of meta tags only")

    group = parser.add_argument_group("output format")
    group.add_argument('-j', '--json', action='store_true', help="Output in JSON format")

    group = parser.add_argument_group("other options")
    group.add_argument('-v', '--verbose', action='store_true', help="Show detailed information")
    group.add_argument('-V', '--version', action='store_true', help="Show program version")
    group.add_argument('-z', '--visualize', action='store_true', help="Visualize file download status")
    group.add_argument('--debug', action='store_true', help="Log debugging information to stderr")

    return parser


def options_from_args(args: Namespace) -> DisplayOptions:
    options = DisplayOptions(
        show_special=args.all or args.special,
        show_gap=args.all or args.gap,
        show_standard=args.all or args.standard,
        show_unknown=args.all or args.unknown,
        show_filename=args.name,
        show_filesize=args.size,
        show_date=args.date,
        show_progress=args.progress,
        show_hash=args.hash,
        show_metversion=args.metversion,
        show_tagcount=args.tagcount,
        visualize=args.visualize,
        json_output=args.json,
        verbose=args.verbose,
    )

    nothing_selected = not (
        options.any_tag_filter or options.any_field or options.visualize or
        options.show_hash or options.show_metversion or options.show_tagcount
    )

    if nothing_selected:
        options = replace(options, show_special=True, show_gap=True, show_standard=True, show_unknown=True)

    return options


def _init_logging(debug: bool):
    # Log records go to stderr, stdout carries only the program output
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        style='{',
        format='{levelname}: {name}: {message}',
    )


def print_version(json_output: bool, out: TextIO):
    if json_output:
        json.dump({'version': f"{PROGRAM_NAME} v{__version__}", 'based_on': BASED_ON}, out)
        out.write('\n')
    else:
        out.write(f"{PROGRAM_NAME} v{__version__}\n")
        out.write(f"Based on '{BASED_ON}'\n")


@pretty_unhandled()
def main(argv: Optional[List[str]] = None):
    parser = build_arg_parser()

    if argv is None:
        argv = sys.argv[1:]

    if len(argv) == 0:
        parser.print_help(sys.stderr)
        sys.exit(1)

    args = parser.parse_args(argv)

    _init_logging(args.debug)
    colorama.just_fix_windows_console()

    options = options_from_args(args)
    path = args.file or args.file_arg

    if args.version:
        print_version(options.json_output, sys.stdout)

        if path is None:
            return

    if path is None:
        fail("You must specify a .part.met file (use -f FILE)")

    with descriptive_errors(PartMetError, OSError):
        with PartMetFile(path) as met:
            render(met, options, sys.stdout)
