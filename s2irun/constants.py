"""
constants.py

Configuration constants and default values for s2irun.
"""

# Environment variables
CONFIG_ENV_VARIABLE = 'S2I_CONFIG_PATH'
KANIKO_ENV_VARIABLE = 'KANIKO_EXEC_PATH'
RESULT_PATH_ENV_VARIABLE = 'S2I_RESULT_PATH'
LOG_LEVEL_ENV_VARIABLE = 'S2I_LOG_LEVEL'

# Credential fallbacks read from the environment / .env file
PUSH_USERNAME_ENV = 'S2I_PUSH_USERNAME'
PUSH_PASSWORD_ENV = 'S2I_PUSH_PASSWORD'
PULL_USERNAME_ENV = 'S2I_PULL_USERNAME'
PULL_PASSWORD_ENV = 'S2I_PULL_PASSWORD'

# Pull policies
PULL_ALWAYS = 'always'
PULL_IF_NOT_PRESENT = 'if-not-present'
PULL_NEVER = 'never'
PULL_POLICIES = (PULL_ALWAYS, PULL_IF_NOT_PRESENT, PULL_NEVER)

DEFAULT_BUILDER_PULL_POLICY = PULL_IF_NOT_PRESENT
DEFAULT_PREVIOUS_IMAGE_PULL_POLICY = PULL_IF_NOT_PRESENT
DEFAULT_RUNTIME_IMAGE_PULL_POLICY = PULL_IF_NOT_PRESENT

# Docker daemon configuration
DEFAULT_DOCKER_SOCKET = 'unix:///var/run/docker.sock'
DEFAULT_DOCKER_CLIENT_TIMEOUT = 120
DOCKER_NETWORK_MODES = ('host', 'bridge', 'none')

# Tag templating
DATE_PLACEHOLDER = '${DATE}'
COMMIT_PLACEHOLDER = '${COMMIT}'
DATE_FORMAT = '%Y%m%d%H%M%S'
COMMIT_ID_LENGTH = 8
DEFAULT_IMAGE_TAG = 'latest'

# Rootless (kaniko) build
KANIKO_DOCKER_CONFIG_DIR = '/kaniko/.docker'
DOCKER_CONFIG_FILE = 'config.json'
DOCKERFILE_NAME = 'Dockerfile'

# Registry reporting
REGISTRY_TAG_API_PATH = '/api/repositories/{image_name}/tags/{tag}'
REGISTRY_REQUEST_TIMEOUT = 30

# Builder image labels
SCRIPTS_URL_LABEL = 'io.openshift.s2i.scripts-url'
DESTINATION_LABEL = 'io.openshift.s2i.destination'
ASSEMBLE_USER_LABEL = 'io.openshift.s2i.assemble-user'
ASSEMBLE_INPUT_FILES_LABEL = 'io.openshift.s2i.assemble-input-files'
BUILD_IMAGE_LABEL = 'io.openshift.s2i.build.image'
BUILD_COMMIT_LABEL = 'io.openshift.s2i.build.commit.id'
BUILD_SOURCE_LABEL = 'io.openshift.s2i.build.source-location'

# Scripts
ASSEMBLE_SCRIPT = 'assemble'
RUN_SCRIPT = 'run'
SAVE_ARTIFACTS_SCRIPT = 'save-artifacts'
SOURCE_SCRIPTS_DIR = '.s2i/bin'
DEFAULT_SCRIPTS_URL = 'image:///usr/libexec/s2i'
DEFAULT_DESTINATION = '/tmp'
DEFAULT_BUILD_USER = '1001'

# Working directory layout
UPLOAD_DIR = 'upload'
UPLOAD_SOURCE_DIR = 'src'
UPLOAD_SCRIPTS_DIR = 'scripts'
UPLOAD_ARTIFACTS_DIR = 'artifacts'
RUNTIME_DIR = 'runtime'
WORKING_DIR_PREFIX = 's2i'
LAYERED_IMAGE_PREFIX = 's2i-layered-temp-image'
