import argparse
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import patch

current_script_path = os.path.abspath(__file__)
project_root = os.path.dirname(os.path.dirname(current_script_path))
sys.path.append(project_root)

from dtoize.dtoize import create_subparsers, load_commands, main

def get_json(file_name):
    """Provides the path of a JSON fixture."""
    return os.path.join(os.path.dirname(__file__), 'json', file_name)

OUTPUT_DIR = os.path.join(tempfile.gettempdir(), 'dtoize-main')

class TestMain(unittest.TestCase):

    def tearDown(self):
        shutil.rmtree(OUTPUT_DIR, ignore_errors=True)

    @patch('argparse.ArgumentParser.parse_args', return_value=argparse.Namespace(command=None))
    def test_main_no_command(self, mock_parse_args):
        """Test main function with no command."""
        with patch('argparse.ArgumentParser.print_help') as mock_help:
            main()
            mock_help.assert_called_once()

    @patch('argparse.ArgumentParser.parse_args', return_value=argparse.Namespace(command=None, version=True))
    def test_main_version(self, mock_parse_args):
        """Test main function with --version."""
        with patch('builtins.print') as mock_print:
            main()
            self.assertTrue(mock_print.call_args[0][0].startswith('dtoize '))

    @patch('argparse.ArgumentParser.parse_args', return_value=argparse.Namespace(
        command='json2dart', input=[get_json('users.jsonl')], out=OUTPUT_DIR, collection=None,
        sample_size=None, serialization=None, format=None, config=None, verbose=False))
    def test_main_json2dart_command(self, mock_parse_args):
        """Test main function with json2dart command."""
        with patch('builtins.print') as mock_print:
            main()
            mock_print.assert_called_once_with(os.path.join(OUTPUT_DIR, 'user_dto.dart'))
        assert os.path.exists(os.path.join(OUTPUT_DIR, 'user_dto.dart'))

    @patch('argparse.ArgumentParser.parse_args', return_value=argparse.Namespace(
        command='json2py', input=[get_json('orders.jsonl')], out=OUTPUT_DIR, collection='orders',
        sample_size=2, config=None, verbose=False))
    def test_main_json2py_command(self, mock_parse_args):
        """Test main function with json2py command."""
        with patch('builtins.print'):
            main()
        assert os.path.exists(os.path.join(OUTPUT_DIR, 'order_dto.py'))

    @patch('argparse.ArgumentParser.parse_args', return_value=argparse.Namespace(
        command='json2dart', input=[get_json('missing.json')], out=OUTPUT_DIR, collection=None,
        sample_size=None, serialization=None, format=None, config=None, verbose=False))
    def test_main_error_exits(self, mock_parse_args):
        """Test that a failing command prints the error and exits with status 1."""
        with patch('builtins.print') as mock_print:
            with self.assertRaises(SystemExit) as cm:
                main()
        self.assertEqual(cm.exception.code, 1)
        self.assertEqual(mock_print.call_args[0][0], 'Error: ')

    @patch('argparse.ArgumentParser.parse_args', return_value=argparse.Namespace(
        command='batch', config=get_json('missing.yaml'), verbose=False))
    def test_main_batch_missing_config(self, mock_parse_args):
        """Test main function with a batch file that does not exist."""
        with patch('builtins.print') as mock_print:
            with self.assertRaises(SystemExit):
                main()
        self.assertIn('Configuration file not found', mock_print.call_args[0][1])

    def test_parser_from_commands(self):
        """Test that commands.json produces a working parser."""
        parser = argparse.ArgumentParser()
        create_subparsers(parser.add_subparsers(dest='command'), load_commands())
        args = parser.parse_args(['json2dart', 'a.json', 'b.jsonl', '--sample-size', '5', '--format',
                                  '--serialization', 'json_serializable'])
        self.assertEqual(args.input, ['a.json', 'b.jsonl'])
        self.assertEqual(args.sample_size, 5)
        self.assertTrue(args.format)
        self.assertEqual(args.serialization, 'json_serializable')
        self.assertIsNone(args.out)
        args = parser.parse_args(['json2dart', 'a.json'])
        self.assertIsNone(args.format)
        args = parser.parse_args(['batch'])
        self.assertEqual(args.config, 'dtoize.yaml')
        with patch('sys.stderr'):
            with self.assertRaises(SystemExit):
                parser.parse_args(['json2dart', 'a.json', '--serialization', 'protobuf'])

if __name__ == '__main__':
    unittest.main()
