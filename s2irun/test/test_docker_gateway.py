import unittest
from unittest.mock import patch, MagicMock

import docker.errors

from s2irun.exceptions import CommitError, DaemonError, PullError, ScriptError, StrategyError
from s2irun.models import AuthConfig
from s2irun.tools.docker_gateway import DockerGateway, DockerConfig


class TestDockerConfig(unittest.TestCase):

    @patch.dict('os.environ', {'DOCKER_HOST': 'tcp://10.0.0.1:2376', 'DOCKER_CERT_PATH': '/certs',
                               'DOCKER_TLS_VERIFY': '1'})
    def test_from_env(self):
        cfg = DockerConfig.from_env()
        self.assertEqual(cfg.endpoint, 'tcp://10.0.0.1:2376')
        self.assertEqual(cfg.cert_file, '/certs/cert.pem')
        self.assertEqual(cfg.ca_file, '/certs/ca.pem')
        self.assertTrue(cfg.tls_verify)
        self.assertTrue(cfg.use_tls)

    @patch.dict('os.environ', {}, clear=True)
    def test_defaults(self):
        cfg = DockerConfig.from_env()
        self.assertEqual(cfg.endpoint, 'unix:///var/run/docker.sock')
        self.assertFalse(cfg.use_tls)


class TestDockerGateway(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.pull_auth = AuthConfig(username='bob', password='pw')
        self.gateway = DockerGateway(DockerConfig(), pull_auth=self.pull_auth, client=self.client)

    @patch('s2irun.tools.docker_gateway.docker.DockerClient')
    def test_client_created_lazily(self, mock_client_cls):
        gateway = DockerGateway(DockerConfig(endpoint='unix:///tmp/docker.sock', timeout=30))
        mock_client_cls.assert_not_called()
        self.assertIs(gateway.client, mock_client_cls.return_value)
        mock_client_cls.assert_called_once_with(base_url='unix:///tmp/docker.sock', tls=None, timeout=30)

    @patch('s2irun.tools.docker_gateway.docker.DockerClient',
           side_effect=docker.errors.DockerException('bad endpoint'))
    def test_client_creation_failure(self, mock_client_cls):
        gateway = DockerGateway(DockerConfig())
        with self.assertRaises(DaemonError):
            gateway.check_reachable()

    def test_unreachable_daemon(self):
        self.client.ping.side_effect = docker.errors.APIError('connection refused')
        with self.assertRaises(DaemonError):
            self.gateway.check_reachable()

    def test_pull_if_not_present_uses_local_image(self):
        image = MagicMock()
        self.client.images.get.return_value = image
        self.assertIs(self.gateway.pull_image('centos/python', 'if-not-present'), image)
        self.client.images.pull.assert_not_called()

    def test_pull_if_not_present_pulls_missing_image(self):
        self.client.images.get.side_effect = docker.errors.ImageNotFound('missing')
        self.gateway.pull_image('registry.io/centos/python:3.6', 'if-not-present')
        self.client.images.pull.assert_called_once_with(
            'registry.io/centos/python', tag='3.6', auth_config={'username': 'bob', 'password': 'pw'}
        )

    def test_pull_always(self):
        self.gateway.pull_image('centos/python', 'always')
        self.client.images.get.assert_not_called()
        self.client.images.pull.assert_called_once()

    def test_pull_never_missing(self):
        self.client.images.get.side_effect = docker.errors.ImageNotFound('missing')
        self.assertIsNone(self.gateway.pull_image('centos/python', 'never'))
        with self.assertRaises(PullError):
            self.gateway.require_image('centos/python', 'never')

    def test_pull_failure(self):
        self.client.images.pull.side_effect = docker.errors.APIError('denied')
        with self.assertRaises(PullError):
            self.gateway.pull_image('centos/python', 'always')

    def test_build_failure_uses_error_class(self):
        self.client.images.build.side_effect = docker.errors.BuildError('step failed', [{'stream': 'Step 1/2'}])
        with self.assertRaises(CommitError):
            self.gateway.build_image('/tmp/ctx', 'app', error_cls=CommitError)

    def test_push_error_chunk(self):
        self.client.images.push.return_value = iter([{'status': 'Preparing'}, {'error': 'denied'}])
        with self.assertRaises(StrategyError):
            self.gateway.push_image('registry.io/alice/app:v1')

    def test_run_script_non_zero(self):
        container = MagicMock()
        container.logs.return_value = iter([b'assembling\n'])
        container.wait.return_value = {'StatusCode': 1}
        self.client.containers.create.return_value = container

        with self.assertRaises(ScriptError):
            self.gateway.run_script('app', ['/usr/libexec/s2i/assemble'], user='1001')
        container.remove.assert_called_once_with(force=True)

    def test_capture_output_reads_attach_stream(self):
        container = MagicMock()
        container.id = 'c0ffee'
        container.wait.return_value = {'StatusCode': 0}
        self.client.containers.create.return_value = container
        self.client.api.attach.return_value = iter([b'tar-\xe9\x00', b'bytes'])

        data = self.gateway.capture_output('app', ['save-artifacts'], archives=[('/tmp', b'scripts')])

        self.assertEqual(data, b'tar-\xe9\x00bytes')
        self.client.api.attach.assert_called_once_with(
            'c0ffee', stdout=True, stderr=False, stream=True, logs=True
        )
        container.logs.assert_not_called()
        container.put_archive.assert_called_once_with('/tmp', b'scripts')
        container.start.assert_called_once_with()
        container.remove.assert_called_once_with(force=True)

    def test_capture_output_non_zero(self):
        container = MagicMock()
        container.wait.return_value = {'StatusCode': 1}
        self.client.containers.create.return_value = container
        self.client.api.attach.return_value = iter([])

        with self.assertRaises(ScriptError):
            self.gateway.capture_output('app', ['save-artifacts'])
        container.remove.assert_called_once_with(force=True)

    def test_commit_failure(self):
        container = MagicMock()
        container.commit.side_effect = docker.errors.APIError('no space')
        with self.assertRaises(CommitError):
            self.gateway.commit_container(container, 'alice/app:v1')

    def test_commit_without_name(self):
        container = MagicMock()
        self.gateway.commit_container(container, '', changes=['USER 1001'])
        container.commit.assert_called_once_with(repository=None, tag=None, changes=['USER 1001'], conf=None)

    def test_remove_image_failure_is_not_fatal(self):
        self.client.images.remove.side_effect = docker.errors.APIError('in use')
        self.gateway.remove_image('app')

    def test_image_metadata(self):
        image = MagicMock()
        image.labels = {'io.openshift.s2i.destination': '/opt'}
        image.attrs = {'Config': {'OnBuild': ['RUN make'], 'User': '1001'}}
        self.assertEqual(DockerGateway.image_labels(image), {'io.openshift.s2i.destination': '/opt'})
        self.assertEqual(DockerGateway.onbuild_instructions(image), ['RUN make'])
        self.assertEqual(DockerGateway.image_user(image), '1001')


if __name__ == '__main__':
    unittest.main()
