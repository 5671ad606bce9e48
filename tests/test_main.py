import contextlib
import io
import json
import os
import tempfile
import unittest

from logsieve import __version__
from logsieve.main import LogSieveApp, main

APACHE_LINE = '127.0.0.1 - - [10/Oct/2000:13:55:36 -0700] "GET /apache_pb.gif HTTP/1.0" 200 2326 "-" "Mozilla/4.08"'
BAD_DATE_LINE = '10.1.2.3 - - [not a date] "GET / HTTP/1.1" 200 1 "-" "ua"'


class CLITestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def write(self, name: str, content: str) -> str:
        path = os.path.join(self.tmpdir.name, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return path

    def run_cli(self, *argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            code = main(list(argv))
        return code, stdout.getvalue(), stderr.getvalue()


class TestMain(CLITestCase):
    def test_table_output(self):
        path = self.write('access.log', f"{APACHE_LINE}\n\nnot a log line\n")
        code, out, _ = self.run_cli(path, '--log-level', 'error')
        self.assertEqual(code, 0)
        self.assertIn('127.0.0.1', out)
        self.assertIn('1 entries, 1 rejects', out)
        self.assertNotIn('Rejected lines', out)

    def test_json_with_rejects(self):
        path = self.write('access.log', f"{APACHE_LINE}\nnot a log line\n")
        code, out, _ = self.run_cli(path, '--format', 'json', '--show-rejects', '--log-level', 'error')
        self.assertEqual(code, 0)
        body, rejects = out.split('\n\n', 1)
        self.assertEqual(json.loads(body)[0]['date'], '2000-10-10 01:55:36')
        self.assertIn('[1] not a log line', rejects)

    def test_missing_source(self):
        code, out, err = self.run_cli(os.path.join(self.tmpdir.name, 'missing.log'), '--log-level', 'error')
        self.assertEqual(code, 1)
        self.assertEqual(out, '')
        self.assertIn('Error: UploadError', err)
        self.assertIn('Log file not found', err)

    def test_abort_on_bad_date(self):
        path = self.write('access.log', f"{APACHE_LINE}\n{BAD_DATE_LINE}\n")
        code, _, err = self.run_cli(path, '--on-bad-date', 'abort', '--log-level', 'error')
        self.assertEqual(code, 1)
        self.assertIn('DateNormalizationError', err)
        self.assertIn('line 2', err)

    def test_max_size_override(self):
        path = self.write('access.log', APACHE_LINE * 20)
        code, _, err = self.run_cli(path, '--max-size', '1K', '--log-level', 'error')
        self.assertEqual(code, 1)
        self.assertIn('File must be less than 1K.', err)

    def test_config_file(self):
        config_path = self.write('logsieve.ini', "[output]\nformat = yaml\n\n[logging]\nlevel = ERROR\n")
        log_path = self.write('access.log', APACHE_LINE + '\n')
        code, out, _ = self.run_cli(log_path, '--config', config_path)
        self.assertEqual(code, 0)
        self.assertIn("ip: 127.0.0.1", out)

    def test_missing_config_file(self):
        log_path = self.write('access.log', APACHE_LINE + '\n')
        code, _, err = self.run_cli(log_path, '--config', os.path.join(self.tmpdir.name, 'none.ini'))
        self.assertEqual(code, 1)
        self.assertIn('Config file not found', err)

    def test_source_required(self):
        with self.assertRaises(SystemExit) as ctx:
            self.run_cli()
        self.assertEqual(ctx.exception.code, 2)

    def test_create_sample_config(self):
        target = os.path.join(self.tmpdir.name, 'sample.ini')
        code, out, _ = self.run_cli('--create-sample-config', target)
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(target))
        self.assertIn(target, out)

    def test_create_sample_config_unwritable(self):
        target = os.path.join(self.tmpdir.name, 'missing-dir', 'sample.ini')
        code, out, err = self.run_cli('--create-sample-config', target)
        self.assertEqual(code, 1)
        self.assertEqual(out, '')
        self.assertIn('Error: FileNotFoundError', err)

    def test_zero_timeout_in_config(self):
        config_path = self.write('logsieve.ini', "[input]\ntimeout = 0\n")
        log_path = self.write('access.log', APACHE_LINE + '\n')
        code, out, err = self.run_cli(log_path, '--config', config_path)
        self.assertEqual(code, 1)
        self.assertEqual(out, '')
        self.assertIn('Error: ConfigError', err)
        self.assertIn('input.timeout', err)

    def test_log_source_is_directory(self):
        code, _, err = self.run_cli(self.tmpdir.name, '--log-level', 'error')
        self.assertEqual(code, 1)
        self.assertIn('Error: UploadError', err)

    def test_version(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout), self.assertRaises(SystemExit):
            main(['--version'])
        self.assertIn(__version__, stdout.getvalue())


class TestLogSieveApp(CLITestCase):
    def test_run_and_render(self):
        path = self.write('access.log', f"{APACHE_LINE}\nnot a log line\n")
        app = LogSieveApp(overrides={'output.format': 'json', 'logging.level': 'error'})
        result = app.run(path)
        self.assertEqual(result.total, 2)
        self.assertEqual(json.loads(app.render(result))[0]['ip'], '127.0.0.1')

    def test_overrides_ignore_none(self):
        app = LogSieveApp(overrides={'output.format': None, 'input.max_bytes': '4K'})
        self.assertEqual(app.config['output']['format'], 'table')
        self.assertEqual(app.config['input']['max_bytes'], 4096)


if __name__ == "__main__":
    unittest.main()
