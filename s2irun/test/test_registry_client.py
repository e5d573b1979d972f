import json
import os
import tempfile
import unittest
from unittest.mock import patch, MagicMock

import requests

from s2irun.models import AuthConfig, OutputResultInfo, TagInfo
from s2irun.tools import RegistryClient, RestClient
from s2irun.tools.result_sink import JsonFileResultSink, LoggingResultSink, default_result_sink


class TestRegistryClient(unittest.TestCase):

    def setUp(self):
        self.auth = AuthConfig(username='alice', password='secret', server_address='https://registry.io/')
        self.client = RegistryClient(self.auth)

    def test_session_uses_basic_auth(self):
        self.assertEqual(self.client.rest_client.session.auth.username, 'alice')
        self.assertIsNone(RestClient(AuthConfig()).session.auth)

    def test_tag_url(self):
        self.assertEqual(
            self.client.tag_url('alice/app', 'v1'),
            'https://registry.io/api/repositories/alice/app/tags/v1',
        )

    @patch('s2irun.tools.RestClient.get')
    def test_get_tag_info_success(self, mock_get):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.json.return_value = {
            'created': '2024-05-01T00:00:00Z',
            'size': 1024,
            'digest': 'sha256:abc',
        }
        mock_get.return_value = mock_response

        result = self.client.get_tag_info('alice/app', 'v1')

        mock_get.assert_called_once_with('https://registry.io/api/repositories/alice/app/tags/v1')
        self.assertEqual(result, TagInfo('2024-05-01T00:00:00Z', 1024, 'sha256:abc'))

    @patch('s2irun.tools.RestClient.get', side_effect=requests.ConnectionError('refused'))
    def test_get_tag_info_connection_error(self, mock_get):
        self.assertEqual(self.client.get_tag_info('alice/app', 'v1'), TagInfo())

    @patch('s2irun.tools.RestClient.get')
    def test_get_tag_info_error_status(self, mock_get):
        mock_response = MagicMock()
        mock_response.raise_for_status.side_effect = requests.HTTPError('404 Not Found')
        mock_get.return_value = mock_response
        self.assertEqual(self.client.get_tag_info('alice/app', 'v1'), TagInfo())

    @patch('s2irun.tools.RestClient.get')
    def test_get_tag_info_bad_json(self, mock_get):
        mock_response = MagicMock()
        mock_response.json.side_effect = ValueError('Expecting value')
        mock_get.return_value = mock_response
        self.assertEqual(self.client.get_tag_info('alice/app', 'v1'), TagInfo())

    @patch('s2irun.tools.RestClient.get')
    def test_get_tag_info_not_an_object(self, mock_get):
        mock_response = MagicMock()
        mock_response.json.return_value = ['v1']
        mock_get.return_value = mock_response
        self.assertEqual(self.client.get_tag_info('alice/app', 'v1'), TagInfo())


class TestResultSinks(unittest.TestCase):

    def setUp(self):
        self.info = OutputResultInfo(
            image_name='alice/app',
            image_repo_tags=['v1'],
            image_size=1024,
            image_id='sha256:abc',
            image_created='2024-05-01T00:00:00Z',
        )

    def test_json_file_sink(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'result.json')
            self.assertTrue(JsonFileResultSink(path).record(self.info))
            with open(path) as f:
                data = json.load(f)
        self.assertEqual(data['imageName'], 'alice/app')
        self.assertEqual(data['imageRepoTags'], ['v1'])
        self.assertEqual(data['imageID'], 'sha256:abc')

    def test_json_file_sink_unwritable(self):
        with tempfile.TemporaryDirectory() as tmp:
            blocker = os.path.join(tmp, 'blocker')
            with open(blocker, 'w') as f:
                f.write('')
            path = os.path.join(blocker, 'result.json')
            self.assertFalse(JsonFileResultSink(path).record(self.info))

    def test_default_sink(self):
        with patch.dict(os.environ, {'S2I_RESULT_PATH': '/tmp/result.json'}):
            self.assertIsInstance(default_result_sink(), JsonFileResultSink)
        with patch.dict(os.environ, {}, clear=True):
            self.assertIsInstance(default_result_sink(), LoggingResultSink)


if __name__ == '__main__':
    unittest.main()
