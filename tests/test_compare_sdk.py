import os
import re
from unittest import mock

from compare_sdk import failed_profiles, main, parse_args, print_summary
from storage_checks import FAILED, OK, SKIPPED, CheckResult


def _results(*statuses):
    names = ['List Buckets', 'Head Bucket', 'Upload File']
    return [CheckResult(i + 1, names[i], status) for i, status in enumerate(statuses)]


def test_parse_args_defaults():
    args = parse_args([])
    assert args.profile == 'both'
    assert args.env_file == '.env'
    assert args.filename == 'test-upload.txt'
    assert args.key is None
    assert not args.utc
    assert not args.no_fetch


def test_failed_profiles():
    runs = {'legacy': _results(OK, OK, OK), 'default': _results(OK, OK, FAILED)}
    assert failed_profiles(runs) == ['default']


def test_skipped_steps_are_not_failures():
    assert failed_profiles({'legacy': _results(OK, SKIPPED, OK)}) == []


def test_print_summary_lists_every_step(capsys):
    print_summary({'legacy': _results(OK, OK, OK), 'default': _results(OK, OK, FAILED)})
    lines = capsys.readouterr().out.splitlines()
    assert lines[1] == '--- Summary ---'
    assert 'legacy' in lines[2] and 'default' in lines[2]
    assert lines[5].startswith('3. Upload File')
    assert lines[5].split()[-2:] == ['ok', 'failed']


def test_missing_settings_exit_code(tmp_path, capsys):
    with mock.patch.dict(os.environ, {}, clear=True):
        code = main(['--env-file', str(tmp_path / 'missing.env')])
    assert code == 2
    assert 'AWS_BUCKET_NAME' in capsys.readouterr().out


def test_legacy_profile_run(s3_backend, tmp_path, capsys):
    code = main(['--profile', 'legacy', '--no-fetch', '--env-file', str(tmp_path / 'missing.env')])
    out = capsys.readouterr().out

    assert code == 0
    assert re.search(r'Secret Access Key: \S{5}\*\*\* \(length: \d+\)', out)
    assert '=== Client profile: legacy' in out
    assert 'All S3 operations completed successfully with: legacy' in out


def test_failing_profile_exit_code(s3_backend, tmp_path, capsys):
    with mock.patch.dict(os.environ, {'AWS_BUCKET_NAME': 'no-such-bucket'}):
        code = main(['--profile', 'legacy', '--no-fetch', '--env-file', str(tmp_path / 'missing.env')])
    assert code == 1
    assert 'Some tests failed with the following client profiles: legacy' in capsys.readouterr().out


def test_both_profiles_run(s3_backend, tmp_path, capsys):
    code = main(['--no-fetch', '--env-file', str(tmp_path / 'missing.env')])
    out = capsys.readouterr().out

    assert code == 0
    assert '=== Client profile: legacy' in out
    assert '=== Client profile: default' in out
    summary = out.split('--- Summary ---')[1].splitlines()
    assert summary[1].split() == ['Step', 'legacy', 'default']
    step_rows = [line for line in summary if re.match(r'^\d+\. ', line)]
    assert len(step_rows) == 13
    assert all(row.split()[-2:] == ['ok', 'ok'] for row in step_rows)
    assert 'All S3 operations completed successfully with: legacy, default' in out
