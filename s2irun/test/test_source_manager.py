import os
import tarfile
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import requests

from s2irun.exceptions import SourceError
from s2irun.models import SourceDescriptor, SourceInfo
from s2irun.tools.git import CloneConfig
from s2irun.tools.source_manager import SourceManager


class TestSourceManager(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.target = self.root / 'target'
        self.git = MagicMock()
        self.rest_client = MagicMock()
        self.manager = SourceManager(git=self.git, rest_client=self.rest_client)

        self.local = self.root / 'app'
        (self.local / 'web').mkdir(parents=True)
        (self.local / 'README.md').write_text('app')
        (self.local / 'web' / 'index.html').write_text('<html/>')

    def tearDown(self):
        self.tmp.cleanup()

    def test_local_directory_is_copied(self):
        source = SourceDescriptor(url=str(self.local), kind='file')
        info = self.manager.download(source, self.target)

        self.assertTrue((self.target / 'README.md').is_file())
        self.assertEqual(info.location, str(self.local))
        self.git.clone.assert_not_called()

    def test_context_dir_narrows_source(self):
        source = SourceDescriptor(url=str(self.local), context_dir='web', kind='file')
        info = self.manager.download(source, self.target)

        self.assertTrue((self.target / 'index.html').is_file())
        self.assertFalse((self.target / 'README.md').exists())
        self.assertEqual(info.context_dir, 'web')

    def test_missing_context_dir(self):
        source = SourceDescriptor(url=str(self.local), context_dir='api', kind='file')
        with self.assertRaises(SourceError):
            self.manager.download(source, self.target)

    def test_context_dir_outside_source(self):
        source = SourceDescriptor(url=str(self.local), context_dir='../..', kind='file')
        with self.assertRaises(SourceError):
            self.manager.download(source, self.target)

    def test_non_empty_target(self):
        self.target.mkdir()
        (self.target / 'leftover').write_text('x')
        with self.assertRaises(SourceError):
            self.manager.download(SourceDescriptor(url=str(self.local), kind='file'), self.target)

    def test_remote_repository_is_cloned(self):
        self.git.get_info.return_value = SourceInfo(commit_id='abcdef1234567')
        source = SourceDescriptor(url='https://github.com/org/app.git', ref='main')

        info = self.manager.download(source, self.target)

        self.git.clone.assert_called_once_with(source, self.target, CloneConfig(quiet=True, recursive=True))
        self.assertEqual(info.commit_id, 'abcdef1234567')

    def test_local_archive_is_unpacked(self):
        archive = self.root / 'app.tar'
        with tarfile.open(archive, 'w') as tar:
            tar.add(str(self.local / 'README.md'), arcname='README.md')
        source = SourceDescriptor(url=str(archive), is_binary=True, kind='file')

        self.manager.download(source, self.target)

        self.assertEqual((self.target / 'README.md').read_text(), 'app')

    def test_unknown_archive_format_is_copied(self):
        binary = self.root / 'app.jar.bin'
        binary.write_bytes(b'\x00\x01')
        source = SourceDescriptor(url=str(binary), is_binary=True, kind='file')

        self.manager.download(source, self.target)

        self.assertTrue((self.target / 'app.jar.bin').is_file())
        self.assertEqual((self.target / 'app.jar.bin').read_bytes(), b'\x00\x01')

    def test_corrupt_archive_is_fatal(self):
        archive = self.root / 'app.tar.gz'
        archive.write_bytes(b'not a tarball')
        source = SourceDescriptor(url=str(archive), is_binary=True, kind='file')

        with self.assertRaises(SourceError):
            self.manager.download(source, self.target)

    def test_remote_archive_download_failure(self):
        self.rest_client.download.side_effect = requests.ConnectionError('refused')
        source = SourceDescriptor(url='https://example.com/app.tar.gz', is_binary=True)
        with self.assertRaises(SourceError):
            self.manager.download(source, self.target)

    def test_remote_archive_downloaded_and_unpacked(self):
        def download(url, target):
            with tarfile.open(target, 'w:gz') as tar:
                tar.add(str(self.local / 'README.md'), arcname='README.md')
        self.rest_client.download.side_effect = download
        source = SourceDescriptor(url='https://example.com/app.tar.gz', is_binary=True)

        info = self.manager.download(source, self.target)

        self.assertTrue(os.path.isfile(self.target / 'README.md'))
        self.assertEqual(info.location, 'https://example.com/app.tar.gz')


if __name__ == '__main__':
    unittest.main()
