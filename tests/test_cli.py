"""Tests for the reconcile.py command line."""

import csv
import sys

import pytest

import reconcile


class TestBuildParser:
    """Tests for argument parsing."""

    def test_required_arguments(self):
        parser = reconcile.build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(['--events', 'x.csv'])

    def test_defaults(self):
        args = reconcile.build_parser().parse_args(
            ['--reference', 'r.json', '--events', 'e.csv', '--output', 'o.csv'],
        )
        assert args.html is False
        assert args.no_places is False
        assert args.places_key is None


class TestMain:
    """End-to-end runs on the sample data."""

    def test_writes_reports(self, data_dir, tmp_path, monkeypatch, capsys):
        out = tmp_path / 'report.csv'
        monkeypatch.setattr(sys, 'argv', [
            'reconcile.py',
            '--reference', str(data_dir / 'reference.json'),
            '--events', str(data_dir / 'sample_import.csv'),
            '--output', str(out),
            '--html', '--summary', '--no-places',
        ])
        reconcile.main()

        with open(out, newline='', encoding='utf-8-sig') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 5
        assert all(r['Status'] == 'ready' for r in rows)
        assert out.with_suffix('.html').exists()
        assert 'Import report: sample_import.csv' in capsys.readouterr().out

    def test_missing_events_file_exits(self, data_dir, tmp_path, monkeypatch):
        monkeypatch.setattr(sys, 'argv', [
            'reconcile.py',
            '--reference', str(data_dir / 'reference.json'),
            '--events', str(tmp_path / 'missing.csv'),
            '--output', str(tmp_path / 'out.csv'),
            '--no-places',
        ])
        with pytest.raises(SystemExit) as exc:
            reconcile.main()
        assert exc.value.code == 1
