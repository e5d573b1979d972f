from .decorators import non_fatal_report
from .rest_client import RestClient
from .registry_client import RegistryClient
from .command_runner import CommandRunner, CommandOptions
from .git import Git, CloneConfig, parse_source
from .source_manager import SourceManager
from .docker_gateway import DockerGateway, DockerConfig
from .result_sink import ResultSink, LoggingResultSink, JsonFileResultSink, default_result_sink
from .authenticator import Authenticator
