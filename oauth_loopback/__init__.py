"""Loopback OAuth2 redirect listener for installed applications."""

__version__ = "1.0.0"
__author__ = "Maxime Lamothe-Brassard ( Refraction Point, Inc )"
__author_email__ = "maxime@refractionpoint.com"
__license__ = "Apache v2"
__copyright__ = "Copyright (c) 2020 Refraction Point, Inc"

from .query_validator import AuthorizationOutcome
from .query_validator import OutcomeKind
from .oauth_server import CallbackListener
from .oauth_server import ListenerState
from .authorization import AuthorizationCodeFlow
from .authorization import AuthorizationCode
from .authorization import OAuth2Credentials
from .authorization import load_credentials
from .authorization import build_authorization_url
from .utils import OAuthLoopbackException
from .utils import BindError
from .utils import ValidationError
from .utils import ListenerStateError
from .utils import NotListeningError
from .utils import CredentialsError
from .utils import AuthorizationError
from .utils import FutureOutcome
