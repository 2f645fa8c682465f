import os

# Path to the CLI settings file. Can be overriden for tests.
CONFIG_FILE_PATH = os.path.expanduser( '~/.oauth_loopback' )
CONFIG_FILE_ENV_VAR = 'OAUTH_LOOPBACK_CONFIG'

# Address the callback listener binds to, and the host name advertised
# in the endpoint handed to the browser.
CALLBACK_BIND_ADDRESS = '127.0.0.1'
CALLBACK_HOST = 'localhost'

# Number of bind attempts before giving up with a BindError.
MAX_BIND_ATTEMPTS = 5

# Entropy (in bytes) of the random path segment of the endpoint.
CALLBACK_PATH_BYTES = 16

# Body returned to the browser once the redirect has been captured.
SUCCESS_RESPONSE_TEXT = 'You may close this tab.'

# Seconds a connected client has to send its request before it is dropped.
REQUEST_READ_TIMEOUT = 10

# Seconds stop() waits for the worker thread to wind down.
STOP_JOIN_TIMEOUT = 5
# Seconds allowed for the loopback connection used to wake a pending accept.
WAKE_CONNECT_TIMEOUT = 1

# OAuth-related constants
OAUTH_CALLBACK_TIMEOUT = 300  # 5 minutes

# Google installed-app defaults.
DEFAULT_AUTH_URI = 'https://accounts.google.com/o/oauth2/auth'
# Full control is needed to read, write and change ACLs of buckets and objects.
DEFAULT_SCOPE = 'https://www.googleapis.com/auth/devstorage.full_control'
