import os
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock, patch

import requests

from logsieve.errors import ConfigError, UploadError
from logsieve.inputs import open_source, read_source
from logsieve.inputs.file_input import FileInput, read_log_file, split_lines
from logsieve.inputs.http_input import HTTPInput, fetch_log

APACHE_LINE = '127.0.0.1 - - [10/Oct/2000:13:55:36 -0700] "GET /apache_pb.gif HTTP/1.0" 200 2326 "-" "Mozilla/4.08"'


class TestSplitLines(unittest.TestCase):
    def test_terminators_removed(self):
        self.assertEqual(split_lines('a\r\nb\nc'), ['a', 'b', 'c'])

    def test_trailing_newline(self):
        self.assertEqual(split_lines('a\n\nb\n'), ['a', '', 'b'])

    def test_bare_carriage_return(self):
        self.assertEqual(split_lines('a\rb\r'), ['a', 'b'])
        self.assertEqual(split_lines('a\r\nb\rc\nd'), ['a', 'b', 'c', 'd'])

    def test_blank_lines_kept(self):
        self.assertEqual(split_lines('a\r\rb\r\n\r\n'), ['a', '', 'b', ''])

    def test_empty(self):
        self.assertEqual(split_lines(''), [])


class TestFileInput(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def _write(self, name, payload: bytes) -> str:
        path = os.path.join(self.tmpdir, name)
        with open(path, 'wb') as f:
            f.write(payload)
        return path

    def test_read_lines_in_order(self):
        path = self._write('access.log', (APACHE_LINE + '\r\n\r\nsecond line\n').encode('utf-8'))
        self.assertEqual(read_log_file(path), [APACHE_LINE, '', 'second line'])

    def test_carriage_return_terminators(self):
        path = self._write('mac.log', (APACHE_LINE + '\rjunk\r').encode('utf-8'))
        self.assertEqual(read_log_file(path), [APACHE_LINE, 'junk'])

    def test_missing_file(self):
        with self.assertRaises(UploadError) as ctx:
            read_log_file(os.path.join(self.tmpdir, 'nope.log'))
        self.assertIn('not found', str(ctx.exception))

    def test_directory(self):
        with self.assertRaises(UploadError):
            read_log_file(self.tmpdir)

    def test_oversized(self):
        path = self._write('big.log', b'x' * 2048)
        with self.assertRaises(UploadError) as ctx:
            FileInput(path, max_bytes=1024).read_lines()
        self.assertEqual(
            str(ctx.exception),
            "The file size exceeds the maximum file size limit.  File must be less than 1K."
        )
        self.assertEqual(ctx.exception.source, path)

    def test_no_limit(self):
        path = self._write('big.log', b'line\n' * 1000)
        self.assertEqual(len(FileInput(path, max_bytes=0).read_lines()), 1000)

    def test_encoding(self):
        path = self._write('latin.log', 'caf\xe9\n'.encode('latin-1'))
        self.assertEqual(read_log_file(path, encoding='latin-1'), ['caf\xe9'])

    def test_undecodable_bytes_replaced(self):
        path = self._write('broken.log', b'ok\n\xff\xfe bad\n')
        self.assertEqual(read_log_file(path), ['ok', '\ufffd\ufffd bad'])

    def test_unknown_encoding(self):
        path = self._write('access.log', b'line\n')
        with self.assertRaises(UploadError):
            read_log_file(path, encoding='no-such-codec')


def make_response(body: bytes, status_code: int = 200, headers=None, chunk: int = 16):
    response = MagicMock()
    response.status_code = status_code
    response.reason = 'OK' if status_code < 400 else 'Not Found'
    response.headers = {'Content-Length': str(len(body))} if headers is None else headers
    response.iter_content.return_value = [body[i:i + chunk] for i in range(0, len(body), chunk)]
    return response


class TestHTTPInput(unittest.TestCase):
    URL = 'https://logs.example.com/access.log'

    @patch('requests.get')
    def test_download(self, mock_get):
        response = make_response((APACHE_LINE + '\nbad line\n').encode('utf-8'))
        mock_get.return_value = response

        lines = fetch_log(self.URL, timeout=5)

        self.assertEqual(lines, [APACHE_LINE, 'bad line'])
        mock_get.assert_called_once_with(self.URL, stream=True, timeout=5)
        response.close.assert_called_once()

    @patch('requests.get')
    def test_http_error(self, mock_get):
        mock_get.return_value = make_response(b'missing', status_code=404)
        with self.assertRaises(UploadError) as ctx:
            fetch_log(self.URL)
        self.assertIn('HTTP 404', str(ctx.exception))

    @patch('requests.get')
    def test_declared_length_too_large(self, mock_get):
        response = make_response(b'', headers={'Content-Length': str(10 * 1024 * 1024)})
        mock_get.return_value = response
        with self.assertRaises(UploadError) as ctx:
            HTTPInput(self.URL, max_bytes=1024).read_lines()
        self.assertIn('exceeds the maximum file size', str(ctx.exception))
        response.iter_content.assert_not_called()
        response.close.assert_called_once()

    @patch('requests.get')
    def test_streamed_body_too_large(self, mock_get):
        mock_get.return_value = make_response(b'x' * 100, headers={})
        with self.assertRaises(UploadError):
            HTTPInput(self.URL, max_bytes=50).read_lines()

    @patch('requests.get')
    def test_partial_body(self, mock_get):
        mock_get.return_value = make_response(b'short', headers={'Content-Length': '500'})
        with self.assertRaises(UploadError) as ctx:
            fetch_log(self.URL)
        self.assertIn('partially uploaded', str(ctx.exception))

    @patch('requests.get')
    def test_compressed_body_length_not_compared(self, mock_get):
        mock_get.return_value = make_response(
            b'line one\nline two\n', headers={'Content-Length': '9', 'Content-Encoding': 'gzip'}
        )
        self.assertEqual(fetch_log(self.URL), ['line one', 'line two'])

    @patch('requests.get')
    def test_broken_stream(self, mock_get):
        response = make_response(b'abc')
        response.iter_content.side_effect = requests.exceptions.ChunkedEncodingError('connection reset')
        mock_get.return_value = response
        with self.assertRaises(UploadError) as ctx:
            fetch_log(self.URL)
        self.assertIn('partially uploaded', str(ctx.exception))

    @patch('requests.get')
    def test_connection_error(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError('refused')
        with self.assertRaises(UploadError) as ctx:
            fetch_log(self.URL)
        self.assertEqual(ctx.exception.source, self.URL)

    @patch('requests.get')
    def test_non_positive_timeout(self, mock_get):
        for timeout in (0, -1):
            with self.subTest(timeout=timeout):
                with self.assertRaises(ConfigError):
                    fetch_log(self.URL, timeout=timeout)
        mock_get.assert_not_called()


class TestOpenSource(unittest.TestCase):
    def test_url_dispatch(self):
        handler = open_source('HTTPS://logs.example.com/a.log', {'max_bytes': 10, 'timeout': 3, 'encoding': 'ascii'})
        self.assertIsInstance(handler, HTTPInput)
        self.assertEqual(handler.timeout, 3)
        self.assertEqual(handler.max_bytes, 10)
        self.assertEqual(handler.encoding, 'ascii')

    def test_path_dispatch(self):
        handler = open_source('/var/log/apache2/access.log', {'max_bytes': 10, 'timeout': 3})
        self.assertIsInstance(handler, FileInput)
        self.assertEqual(handler.max_bytes, 10)

    def test_read_source(self):
        with tempfile.NamedTemporaryFile('w', suffix='.log', delete=False) as f:
            f.write(APACHE_LINE + '\n')
            path = f.name
        try:
            self.assertEqual(read_source(path), [APACHE_LINE])
        finally:
            os.unlink(path)


if __name__ == "__main__":
    unittest.main()
