import io
import json
import unittest

from contextlib import redirect_stdout, redirect_stderr
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import List, Tuple

from atmfjstc.lib.part_met.cli import main, build_arg_parser, options_from_args
from atmfjstc.lib.part_met.cli.render import format_date

from part_met_samples import build_part_met, bad_type_tag, SAMPLE_HASH_HEX, LAST_SEEN


class CliTestBase(unittest.TestCase):
    def setUp(self):
        self._temp_dir = TemporaryDirectory()
        self.path = Path(self._temp_dir.name) / 'sample.part.met'
        self.path.write_bytes(build_part_met(0xE0, block_count=1))

    def tearDown(self):
        self._temp_dir.cleanup()

    def run_cli(self, *args: str) -> Tuple[str, str]:
        out = io.StringIO()
        err = io.StringIO()

        with redirect_stdout(out), redirect_stderr(err):
            main(list(args))

        return out.getvalue(), err.getvalue()

    def run_cli_failing(self, *args: str) -> Tuple[int, str]:
        err = io.StringIO()

        with redirect_stdout(io.StringIO()), redirect_stderr(err):
            with self.assertRaises(SystemExit) as ctx:
                main(list(args))

        return ctx.exception.code, err.getvalue()

    def run_cli_json(self, *args: str) -> dict:
        out, _ = self.run_cli(*args, '-j')

        return json.loads(out)

    def run_cli_lines(self, *args: str) -> List[str]:
        out, _ = self.run_cli(*args)

        return out.splitlines()


class OptionsTest(unittest.TestCase):
    def test_all_categories_by_default(self):
        options = options_from_args(build_arg_parser().parse_args(['-f', 'x']))

        self.assertTrue(options.show_special and options.show_gap and options.show_standard and options.show_unknown)

    def test_filter_disables_default(self):
        options = options_from_args(build_arg_parser().parse_args(['-f', 'x', '-g']))

        self.assertTrue(options.show_gap)
        self.assertFalse(options.show_special or options.show_standard or options.show_unknown)

    def test_visualize_alone_shows_no_tags(self):
        options = options_from_args(build_arg_parser().parse_args(['-f', 'x', '-z']))

        self.assertFalse(options.any_tag_filter)


class SingleValueModesTest(CliTestBase):
    def test_metversion(self):
        self.assertEqual(self.run_cli('-f', str(self.path), '-m')[0], '14.0\n')
        self.assertEqual(self.run_cli_json('-f', str(self.path), '-m'), {'format_version': '14.0'})

    def test_hash(self):
        self.assertEqual(self.run_cli('-f', str(self.path), '-e')[0], SAMPLE_HASH_HEX + '\n')
        self.assertEqual(self.run_cli_json('-f', str(self.path), '-e'), {'ed2k_hash': SAMPLE_HASH_HEX})

    def test_tagcount(self):
        self.assertEqual(self.run_cli('-f', str(self.path), '-c')[0], '9\n')
        self.assertEqual(self.run_cli_json('-f', str(self.path), '-c'), {'num_tags': 9})

    def test_positional_file(self):
        self.assertEqual(self.run_cli(str(self.path), '-m')[0], '14.0\n')


class FieldModesTest(CliTestBase):
    def test_name(self):
        self.assertEqual(self.run_cli('-f', str(self.path), '-n')[0], 'movie.avi\n')

    def test_size(self):
        self.assertEqual(self.run_cli('-f', str(self.path), '-S')[0], '104857600\n')

    def test_date(self):
        self.assertEqual(self.run_cli('-f', str(self.path), '-d')[0], f'{LAST_SEEN}\n')
        self.assertEqual(self.run_cli('-f', str(self.path), '-d', '-v')[0], format_date(LAST_SEEN) + '\n')

    def test_progress(self):
        self.assertEqual(self.run_cli('-f', str(self.path), '-p')[0], '50.0\n')

    def test_first_field_only_in_text_mode(self):
        self.assertEqual(self.run_cli('-f', str(self.path), '-S', '-n')[0], 'movie.avi\n')

    def test_missing_field_prints_nothing(self):
        self.path.write_bytes(build_part_met(tags=()))

        self.assertEqual(self.run_cli('-f', str(self.path), '-n')[0], '')

    def test_json_fields(self):
        data = self.run_cli_json('-f', str(self.path), '-n', '-S', '-p', '-v')

        self.assertEqual(data, {'fields': {
            'filename': 'movie.avi',
            'filesize': 104857600,
            'filesize_mb': 100.0,
            'progress': {
                'total_bytes': 104857600,
                'downloaded_bytes': 52428800,
                'total_mb': 100.0,
                'downloaded_mb': 50.0,
                'percentage': 50.0,
            },
        }})

    def test_json_missing_fields(self):
        self.path.write_bytes(build_part_met(tags=()))

        data = self.run_cli_json('-f', str(self.path), '-n', '-S', '-d')

        self.assertEqual(data, {'fields': {'filename': None, 'filesize': None, 'last_seen': None}})


class ReportTest(CliTestBase):
    def test_text_report(self):
        lines = self.run_cli_lines('-f', str(self.path))

        self.assertEqual(lines[:3], [
            ".part.met file version: 14.0",
            f"ED2K Hash: {SAMPLE_HASH_HEX}",
            "Number of meta tags: 9",
        ])
        self.assertIn("=== META TAGS ===", lines)
        self.assertIn('Tag: (Special, 1) Filename = "movie.avi"', lines)
        self.assertIn("Tag: (Special, 2) File size in bytes = 104857600", lines)
        self.assertIn("Tag: (Special, 20) Download status: Paused = 7", lines)
        self.assertIn("Tag: (Gap) Start of gap (undownloaded area), Reference: 0, Value: 52428800", lines)
        self.assertIn("Tag: (Gap) End of gap (undownloaded area), Reference: 0, Value: 104857600", lines)
        self.assertIn('Tag: (Standard) Artist = "Someone"', lines)
        self.assertIn('Tag: (Unknown) Name: "Comment", Value: "hi"', lines)
        self.assertNotIn("=== FILE DOWNLOAD VISUALIZATION ===", lines)

    def test_verbose_text_report(self):
        lines = self.run_cli_lines('-f', str(self.path), '-v')

        self.assertIn("Tag: (Special, 2) File size in bytes = 104857600 (100.00 MB)", lines)
        self.assertIn(
            "Tag: (Special, 20) Download status: Paused = 7 - Download is manually paused", lines
        )
        self.assertIn(
            f"Tag: (Special, 5) Last time file was seen complete on network = {LAST_SEEN} ({format_date(LAST_SEEN)})",
            lines
        )
        self.assertIn(
            "Tag: (Gap) Start of gap (undownloaded area), Reference: 0, Value: 52428800 (50.00 MB)", lines
        )
        self.assertIn('Tag: (Standard) Artist = "Someone" - Media file artist', lines)

    def test_filters(self):
        lines = self.run_cli_lines('-f', str(self.path), '-g', '-u')

        tag_lines = [line for line in lines if line.startswith('Tag:')]

        self.assertEqual(len(tag_lines), 3)
        self.assertTrue(all(line.startswith(('Tag: (Gap)', 'Tag: (Unknown)')) for line in tag_lines))

    def test_visualization_text(self):
        lines = self.run_cli_lines('-f', str(self.path), '-z')

        self.assertNotIn("=== META TAGS ===", lines)
        self.assertIn("=== FILE DOWNLOAD VISUALIZATION ===", lines)
        self.assertIn("Total size: 104857600 bytes (100.00 MB)", lines)
        self.assertIn("Downloaded: 52428800 bytes (50.00 MB, 50.0%)", lines)
        self.assertIn('[' + '#' * 35 + ' ' * 35 + ']', lines)
        self.assertIn("Gaps: 1", lines)
        self.assertIn("Total gap size: 50.00 MB (50.0% of file)", lines)

    def test_json_report(self):
        data = self.run_cli_json('-f', str(self.path), '-a', '-z')

        self.assertEqual(data['format_version'], '14.0')
        self.assertEqual(data['ed2k_hash'], SAMPLE_HASH_HEX)
        self.assertEqual(data['num_tags'], 9)
        self.assertEqual(len(data['tags']), 9)

        self.assertEqual(data['tags'][1], {
            'type': 'special', 'id': 2, 'description': "File size in bytes", 'value': 104857600, 'value_mb': 100.0,
        })
        self.assertEqual(data['tags'][5], {
            'type': 'gap', 'gap_type': 'start', 'reference': '0', 'value': 52428800,
        })
        self.assertEqual(data['tags'][7], {'type': 'standard', 'name': 'Artist', 'value': 'Someone'})

        visualization = data['visualization']
        self.assertEqual(visualization['percentage'], 50.0)
        self.assertEqual(visualization['bar'], [1] * 35 + [0] * 35)
        self.assertEqual(visualization['gaps']['count'], 1)
        self.assertEqual(visualization['gaps']['details'], [
            {'start': 52428800, 'end': 104857600, 'size': 52428800, 'size_mb': 50.0},
        ])

    def test_zero_file_size(self):
        self.path.write_bytes(build_part_met(tags=()))

        data = self.run_cli_json('-f', str(self.path), '-z')

        self.assertEqual(data['visualization']['percentage'], 0.0)
        self.assertEqual(data['visualization']['gaps']['percentage'], 0.0)
        self.assertNotIn('tags', data)


class ErrorsAndMiscTest(CliTestBase):
    def test_version_without_file(self):
        out, _ = self.run_cli('-V')

        self.assertTrue(out.startswith('readmet v'))

    def test_version_json(self):
        out, _ = self.run_cli('-V', '-j')

        self.assertIn('version', json.loads(out))

    def test_no_arguments(self):
        code, err = self.run_cli_failing()

        self.assertEqual(code, 1)
        self.assertIn('usage:', err)

    def test_no_file(self):
        code, err = self.run_cli_failing('-j')

        self.assertEqual(code, -1)
        self.assertIn("You must specify a .part.met file", err)

    def test_nonexistent_file(self):
        code, err = self.run_cli_failing('-f', str(self.path) + '.nope')

        self.assertEqual(code, -1)
        self.assertIn('No such file', err)
        self.assertNotIn('Traceback', err)

    def test_bad_format(self):
        self.path.write_bytes(b'\x42' * 64)

        code, err = self.run_cli_failing('-f', str(self.path))

        self.assertEqual(code, -1)
        self.assertIn("is not a valid .part.met file", err)
        self.assertIn("Unrecognized or invalid file format", err)

    def test_bad_tag_type(self):
        self.path.write_bytes(build_part_met(tags=(), tag_count=1, trailer=bad_type_tag(99)))

        code, err = self.run_cli_failing('-f', str(self.path))

        self.assertEqual(code, -1)
        self.assertIn("unrecognized tag type: 99", err)


class BrokenTagStreamTest(CliTestBase):
    def setUp(self):
        super().setUp()
        self.path.write_bytes(build_part_met(tags=(), tag_count=1, trailer=bad_type_tag(99)))

    def test_single_value_modes_still_work(self):
        self.assertEqual(self.run_cli('-f', str(self.path), '-m')[0], '14.0\n')
        self.assertEqual(self.run_cli('-f', str(self.path), '-e')[0], SAMPLE_HASH_HEX + '\n')
        self.assertEqual(self.run_cli('-f', str(self.path), '-c')[0], '1\n')
        self.assertEqual(self.run_cli_json('-f', str(self.path), '-c'), {'num_tags': 1})

    def test_report_shows_header_before_failing(self):
        out = io.StringIO()
        err = io.StringIO()

        with redirect_stdout(out), redirect_stderr(err):
            with self.assertRaises(SystemExit) as ctx:
                main(['-f', str(self.path)])

        self.assertEqual(ctx.exception.code, -1)
        self.assertEqual(out.getvalue().splitlines()[:3], [
            ".part.met file version: 14.0",
            f"ED2K Hash: {SAMPLE_HASH_HEX}",
            "Number of meta tags: 1",
        ])
        self.assertIn("unrecognized tag type: 99", err.getvalue())

    def test_fields_fail(self):
        code, err = self.run_cli_failing('-f', str(self.path), '-n')

        self.assertEqual(code, -1)
        self.assertIn("is not a valid .part.met file", err)
