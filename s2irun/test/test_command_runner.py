import unittest

from s2irun.exceptions import ExternalToolError
from s2irun.tools.command_runner import CommandRunner, CommandOptions


class TestCommandRunner(unittest.TestCase):

    def setUp(self):
        self.runner = CommandRunner()

    def test_output_is_returned(self):
        output = self.runner.run_with_options(CommandOptions(stream_output=False), 'sh', '-c', 'echo hello')
        self.assertEqual(output, 'hello\n')

    def test_env_is_merged(self):
        output = self.runner.run_with_options(
            CommandOptions(env={'S2I_TEST_VALUE': 'xyz'}, stream_output=False),
            'sh', '-c', 'echo $S2I_TEST_VALUE',
        )
        self.assertEqual(output.strip(), 'xyz')

    def test_non_zero_exit(self):
        with self.assertRaises(ExternalToolError) as ctx:
            self.runner.run('sh', '-c', 'exit 3')
        self.assertIn('status 3', str(ctx.exception))

    def test_missing_executable(self):
        with self.assertRaises(ExternalToolError):
            self.runner.run('/nonexistent/executor')

    def test_undecodable_output_is_replaced_and_drained(self):
        output = self.runner.run_with_options(
            CommandOptions(timeout=30, stream_output=False),
            'sh', '-c', "printf 'caf\\351\\n'; yes x | head -c 1000000",
        )
        self.assertTrue(output.startswith('caf�\n'))
        self.assertEqual(output.count('x'), 500000)

    def test_timeout_kills_process(self):
        with self.assertRaises(ExternalToolError):
            self.runner.run_with_options(CommandOptions(timeout=0.5, stream_output=False), 'sleep', '5')


if __name__ == '__main__':
    unittest.main()
