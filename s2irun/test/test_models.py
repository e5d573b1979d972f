import unittest

from s2irun.exceptions import ConfigError, ReportingError
from s2irun.models import (
    AuthConfig,
    BuildConfig,
    EnvironmentVariable,
    OutputResultInfo,
    RuntimeArtifact,
    TagInfo,
)


class TestBuildConfig(unittest.TestCase):

    def test_from_dict_reads_json_keys(self):
        config = BuildConfig.from_dict({
            'sourceUrl': 'https://github.com/org/app.git',
            'isBinaryURL': False,
            'builderImage': 'centos/python',
            'incrementalFromTag': 'alice/app:prev',
            'pullAuthentication': {'username': 'bob', 'password': 'pw', 'serverAddress': 'registry.io'},
            'environment': [{'name': 'APP_ENV', 'value': 'prod'}],
            'labels': {'team': 'web'},
            'runtimeArtifacts': [{'source': '/opt/app/app.jar', 'destination': '/deployments'}],
            'dockerNetworkMode': 'host',
        })
        self.assertEqual(config.source_url, 'https://github.com/org/app.git')
        self.assertEqual(config.pull_authentication, AuthConfig('bob', 'pw', '', 'registry.io'))
        self.assertEqual(config.environment, [EnvironmentVariable('APP_ENV', 'prod')])
        self.assertEqual(config.runtime_artifacts, [RuntimeArtifact('/opt/app/app.jar', '/deployments')])
        self.assertEqual(config.environment_dict(), {'APP_ENV': 'prod'})
        self.assertEqual(config.docker_network_mode, 'host')
        self.assertIsNone(config.source)

    def test_unknown_keys_ignored(self):
        config = BuildConfig.from_dict({'builderImage': 'b', 'somethingElse': 1})
        self.assertEqual(config.builder_image, 'b')

    def test_source_is_never_read(self):
        config = BuildConfig.from_dict({'source': 'https://example.com/app.git'})
        self.assertIsNone(config.source)

    def test_not_an_object(self):
        with self.assertRaises(ConfigError):
            BuildConfig.from_dict(['builderImage'])

    def test_bad_environment_entry(self):
        with self.assertRaises(ConfigError):
            BuildConfig.from_dict({'environment': [{'value': 'x'}]})

    def test_previous_image(self):
        self.assertEqual(BuildConfig(tag='alice/app').previous_image, 'alice/app')
        self.assertEqual(
            BuildConfig(tag='alice/app', incremental_from_tag='alice/app:prev').previous_image,
            'alice/app:prev',
        )

    def test_to_dict_masks_passwords(self):
        config = BuildConfig(push_authentication=AuthConfig(username='alice', password='secret'))
        data = config.to_dict()
        self.assertEqual(data['push_authentication']['password'], '********')
        self.assertEqual(data['pull_authentication']['password'], '')
        self.assertEqual(config.push_authentication.password, 'secret')


class TestTagInfo(unittest.TestCase):

    def test_from_dict(self):
        info = TagInfo.from_dict({'created': '2024-05-01', 'size': '2048', 'digest': 'sha256:abc', 'extra': 1})
        self.assertEqual(info, TagInfo('2024-05-01', 2048, 'sha256:abc'))

    def test_missing_fields_are_zero(self):
        self.assertEqual(TagInfo.from_dict({}), TagInfo())

    def test_not_an_object(self):
        with self.assertRaises(ReportingError):
            TagInfo.from_dict('sha256:abc')


class TestOutputResultInfo(unittest.TestCase):

    def test_to_dict(self):
        info = OutputResultInfo(image_name='alice/app')
        self.assertEqual(info.to_dict(), {
            'imageName': 'alice/app',
            'imageRepoTags': ['latest'],
            'imageSize': 0,
            'imageID': '',
            'imageCreated': '',
        })


if __name__ == '__main__':
    unittest.main()
