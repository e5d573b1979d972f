import base64
import json
import os
import tempfile
import unittest
from datetime import datetime
from unittest.mock import MagicMock

from s2irun.builders import RootlessBuildExecutor
from s2irun.exceptions import ExternalToolError, SourceError
from s2irun.models import AuthConfig, BuildConfig, OutputResultInfo, SourceInfo, TagInfo
from s2irun.tools.command_runner import CommandOptions
from s2irun.tools.git import CloneConfig, parse_source


class TestRootlessBuildExecutor(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.context_dir = os.path.join(self.tmp.name, 'context')
        self.credentials_dir = os.path.join(self.tmp.name, '.docker')

        self.git = MagicMock()
        self.git.has_git_binary.return_value = True
        self.git.get_info.return_value = SourceInfo(commit_id='abcdef1234567', ref='main')
        self.runner = MagicMock()
        self.result_sink = MagicMock()
        self.registry_client = MagicMock()
        self.registry_client.get_tag_info.return_value = TagInfo(
            created='2024-05-01T00:00:00Z', size=1024, digest='sha256:abc'
        )
        self.registry_client_factory = MagicMock(return_value=self.registry_client)

        self.executor = RootlessBuildExecutor(
            '/kaniko/executor',
            git=self.git,
            runner=self.runner,
            result_sink=self.result_sink,
            registry_client_factory=self.registry_client_factory,
            credentials_dir=self.credentials_dir,
            clock=lambda: datetime(2024, 5, 1),
        )

        self.config = BuildConfig(
            source_url='https://github.com/org/app.git',
            tag='myapp:${COMMIT}',
            context_dir=self.context_dir,
            push_authentication=AuthConfig(
                username='alice', password='secret', server_address='https://registry.io'
            ),
        )
        self.config.source = parse_source(self.config.source_url)

    def tearDown(self):
        self.tmp.cleanup()

    def test_build_writes_credentials_and_invokes_builder(self):
        result = self.executor.build(self.config)

        destination = 'registry.io/alice/myapp:abcdef12'
        self.assertTrue(result.success)
        self.assertEqual(result.image_name, destination)
        self.assertEqual(self.config.tag, destination)

        self.git.clone.assert_called_once()
        clone_args = self.git.clone.call_args[0]
        self.assertEqual(str(clone_args[1]), self.context_dir)
        self.assertEqual(clone_args[2], CloneConfig(quiet=False))

        with open(os.path.join(self.credentials_dir, 'config.json')) as f:
            docker_config = json.load(f)
        expected_auth = base64.b64encode(b'alice:secret').decode('ascii')
        self.assertEqual(docker_config, {'auths': {'registry.io': {'auth': expected_auth}}})

        self.runner.run_with_options.assert_called_once_with(
            CommandOptions(timeout=None),
            '/kaniko/executor',
            '--dockerfile', os.path.join(self.context_dir, 'Dockerfile'),
            '--context', self.context_dir,
            '--skip-tls-verify-registry', 'registry.io',
            '--destination', destination,
        )

    def test_build_reports_pushed_tag(self):
        self.executor.build(self.config)

        self.registry_client.get_tag_info.assert_called_once_with('alice/myapp', 'abcdef12')
        self.result_sink.record.assert_called_once_with(OutputResultInfo(
            image_name='alice/myapp',
            image_repo_tags=['abcdef12'],
            image_size=1024,
            image_id='sha256:abc',
            image_created='2024-05-01T00:00:00Z',
        ))

    def test_report_strips_registry_host_from_tag(self):
        self.config.tag = 'registry.io/team/app:v1'
        result = self.executor.build(self.config)

        self.assertEqual(result.image_name, 'registry.io/team/app:v1')
        self.registry_client.get_tag_info.assert_called_once_with('team/app', 'v1')
        recorded = self.result_sink.record.call_args[0][0]
        self.assertEqual(recorded.image_name, 'team/app')
        self.assertEqual(recorded.image_repo_tags, ['v1'])

    def test_build_without_registry(self):
        self.config.push_authentication = AuthConfig(username='alice')
        result = self.executor.build(self.config)

        self.assertEqual(result.image_name, 'alice/myapp:abcdef12')
        self.assertFalse(os.path.exists(os.path.join(self.credentials_dir, 'config.json')))
        args = self.runner.run_with_options.call_args[0]
        self.assertNotIn('--skip-tls-verify-registry', args)
        self.registry_client_factory.assert_not_called()
        self.result_sink.record.assert_not_called()

    def test_build_uses_source_context_dir(self):
        self.config.source = parse_source('https://github.com/org/app.git#main:web')
        self.executor.build(self.config)

        args = self.runner.run_with_options.call_args[0]
        web = os.path.join(self.context_dir, 'web')
        self.assertIn(os.path.join(web, 'Dockerfile'), args)
        self.assertEqual(args[args.index('--context') + 1], web)

    def test_date_template(self):
        self.config.tag = 'team/myapp:${DATE}'
        result = self.executor.build(self.config)
        self.assertEqual(result.image_name, 'registry.io/team/myapp:20240501000000')

    def test_git_missing(self):
        self.git.has_git_binary.return_value = False
        with self.assertRaises(SourceError):
            self.executor.build(self.config)
        self.runner.run_with_options.assert_not_called()

    def test_builder_failure_propagates(self):
        self.runner.run_with_options.side_effect = ExternalToolError('/kaniko/executor exited with status 1')
        with self.assertRaises(ExternalToolError):
            self.executor.build(self.config)
        self.result_sink.record.assert_not_called()

    def test_is_available(self):
        self.assertFalse(RootlessBuildExecutor.is_available(''))
        self.assertFalse(RootlessBuildExecutor.is_available(None))
        self.assertFalse(RootlessBuildExecutor.is_available(os.path.join(self.tmp.name, 'missing')))
        executable = os.path.join(self.tmp.name, 'executor')
        with open(executable, 'w') as f:
            f.write('')
        self.assertTrue(RootlessBuildExecutor.is_available(executable))


if __name__ == '__main__':
    unittest.main()
