import os
import yaml

from .constants import CONFIG_FILE_PATH, CONFIG_FILE_ENV_VAR
from .utils import OAuthLoopbackException

# Keys understood in the settings file, at the top level or inside a profile.
SETTINGS_KEYS = ( 'credentials_file', 'scope', 'ports', 'timeout' )


def getConfigPath( path = None ):
    '''Resolve the settings file path.

    The path is taken in the following order:
    1- The explicit path argument.
    2- The OAUTH_LOOPBACK_CONFIG environment variable.
    3- The default "~/.oauth_loopback".
    '''
    if path:
        return path
    return os.environ.get( CONFIG_FILE_ENV_VAR, None ) or CONFIG_FILE_PATH

def loadSettings( path = None, profile = None ):
    """
    Load CLI settings from the YAML settings file.

    Top level keys are the defaults, a named profile under "profiles" overrides them:

        credentials_file: ~/client_secret.json
        profiles:
          staging:
            ports: [ 8085, 8086 ]

    Args:
        path (str): settings file to read, see getConfigPath().
        profile (str): optional profile name to apply on top of the defaults.

    Returns:
        dict: the settings, empty if the file does not exist.

    Raises:
        OAuthLoopbackException: if the file or the requested profile is invalid.
    """
    path = getConfigPath( path )
    try:
        with open( path, 'rb' ) as f:
            conf = yaml.safe_load( f.read() )
    except FileNotFoundError:
        if profile is not None:
            raise OAuthLoopbackException( 'settings file %s not found, cannot use profile %s' % ( path, profile ) )
        return {}
    except yaml.YAMLError as e:
        raise OAuthLoopbackException( 'invalid settings file %s: %s' % ( path, e ) )

    # Handle scenario where a file is empty
    conf = conf or {}
    if not isinstance( conf, dict ):
        raise OAuthLoopbackException( 'invalid settings file %s: expected a mapping' % ( path, ) )

    settings = { k: v for k, v in conf.items() if k in SETTINGS_KEYS }

    if profile is not None:
        profiles = conf.get( 'profiles', None ) or {}
        if profile not in profiles:
            raise OAuthLoopbackException( 'profile %s not found in %s' % ( profile, path ) )
        settings.update( { k: v for k, v in ( profiles[ profile ] or {} ).items() if k in SETTINGS_KEYS } )

    _validateSettings( settings, path )
    return settings

def _validateSettings( settings, path ):
    ports = settings.get( 'ports', None )
    if ports is not None:
        if isinstance( ports, int ):
            ports = [ ports ]
        if not isinstance( ports, list ) or not all( isinstance( p, int ) for p in ports ):
            raise OAuthLoopbackException( 'invalid settings file %s: ports must be a list of integers' % ( path, ) )
        settings[ 'ports' ] = ports

    timeout = settings.get( 'timeout', None )
    if timeout is not None and ( not isinstance( timeout, ( int, float ) ) or timeout <= 0 ):
        raise OAuthLoopbackException( 'invalid settings file %s: timeout must be a positive number' % ( path, ) )

    credentialsFile = settings.get( 'credentials_file', None )
    if credentialsFile is not None:
        settings[ 'credentials_file' ] = os.path.expanduser( str( credentialsFile ) )
