import sys
import traceback


def cli(args):
    """
    Command line interface for oauth-loopback.

    Args:
        args (list): list of CLI arguments to parse.
    """
    import argparse
    from termcolor import colored

    from . import json_utils
    from .config import loadSettings
    from .constants import DEFAULT_SCOPE, OAUTH_CALLBACK_TIMEOUT

    parser = argparse.ArgumentParser( prog = 'oauth-loopback' )
    parser.add_argument( 'action',
                         type = str,
                         help = 'action to perform, currently supported "version" (print the package version), "listen" (wait for one OAuth redirect on a loopback endpoint and print it), "authorize" (run the authorization code flow and print the code)' )

    # Everything after the action name is passed to the action argument parser.
    # For example: oauth-loopback authorize --no-browser -> ["--no-browser"]
    rootArgs = args[ 1: 2 ]
    actionArgs = args[ 2: ]
    args = parser.parse_args( rootArgs )

    def addCommonArguments( actionParser ):
        actionParser.add_argument( '--port',
                                   type = int,
                                   action = 'append',
                                   dest = 'ports',
                                   default = None,
                                   help = 'preferred callback port, can be repeated; an OS-assigned port is used if omitted' )
        actionParser.add_argument( '--timeout',
                                   type = float,
                                   default = None,
                                   help = 'seconds to wait for the redirect (default %s)' % ( OAUTH_CALLBACK_TIMEOUT, ) )
        actionParser.add_argument( '--config',
                                   type = str,
                                   default = None,
                                   help = 'settings file to read defaults from' )
        actionParser.add_argument( '--profile',
                                   type = str,
                                   default = None,
                                   help = 'named profile of the settings file to use' )

    action = args.action.lower()

    if action == 'version':
        from . import __version__
        print( "oauth-loopback version %s" % ( __version__, ) )
    elif action == 'listen':
        from .oauth_server import CallbackListener
        from .utils import FutureOutcome

        parser = argparse.ArgumentParser( prog = 'oauth-loopback listen' )
        addCommonArguments( parser )
        parser.add_argument( '--json',
                             action = 'store_true',
                             default = False,
                             help = 'print the outcome as JSON' )
        listenArgs = parser.parse_args( actionArgs )
        settings = loadSettings( listenArgs.config, listenArgs.profile )
        timeout = listenArgs.timeout or settings.get( 'timeout', OAUTH_CALLBACK_TIMEOUT )

        result = FutureOutcome()
        listener = CallbackListener( result.set, ports = listenArgs.ports or settings.get( 'ports', None ) )
        endpoint = listener.start()
        try:
            print( "Listening on %s" % ( endpoint, ) )
            sys.stdout.flush()
            finished = listener.join( timeout = timeout )
        finally:
            listener.stop()

        outcome = result.get()
        if not finished:
            raise Exception( 'no redirect received within %s seconds' % ( timeout, ) )
        if outcome is None:
            raise Exception( 'redirect rejected: expected exactly one of "code" or "error" on the callback path' )

        if listenArgs.json:
            print( json_utils.dumps( outcome._asdict(), indent = 2 ) )
        else:
            color = 'green' if outcome.is_code else 'red'
            print( colored( "%s: %s" % ( outcome.kind, outcome.value ), color ) )
    elif action == 'authorize':
        from .authorization import AuthorizationCodeFlow, load_credentials

        parser = argparse.ArgumentParser( prog = 'oauth-loopback authorize' )
        addCommonArguments( parser )
        parser.add_argument( '--credentials',
                             type = str,
                             default = None,
                             help = 'path to the OAuth 2.0 client secrets JSON file of an installed application' )
        parser.add_argument( '--scope',
                             type = str,
                             default = None,
                             help = 'space separated scopes to request (default %s)' % ( DEFAULT_SCOPE, ) )
        parser.add_argument( '--no-browser',
                             action = 'store_true',
                             default = False,
                             dest = 'no_browser',
                             help = 'print the authorization URL instead of opening a browser' )
        authArgs = parser.parse_args( actionArgs )
        settings = loadSettings( authArgs.config, authArgs.profile )

        credentialsFile = authArgs.credentials or settings.get( 'credentials_file', None )
        if credentialsFile is None:
            parser.error( '--credentials is required when no credentials_file is set in the settings file' )

        flow = AuthorizationCodeFlow( load_credentials( credentialsFile ),
                                      scope = authArgs.scope or settings.get( 'scope', DEFAULT_SCOPE ),
                                      ports = authArgs.ports or settings.get( 'ports', None ) )
        authCode = flow.authorize( no_browser = authArgs.no_browser,
                                   timeout = authArgs.timeout or settings.get( 'timeout', OAUTH_CALLBACK_TIMEOUT ) )
        print( colored( "Authorization code received.", 'green' ) )
        print( "code: %s" % ( authCode.code, ) )
        print( "redirect_uri: %s" % ( authCode.redirect_uri, ) )
    else:
        raise Exception( 'invalid action: %s' % ( args.action.lower() ) )

def main():
    args = sys.argv

    # Hack since we don't have access to parsed args here and parsing itself may fail
    debug_mode = False
    if "--debug" in args:
        debug_mode = True
        args.remove("--debug")

    import logging
    logging.basicConfig(
        level = logging.DEBUG if debug_mode else logging.WARNING,
        format = "%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cli(args)
    except Exception as e:
        print("Error:", e, file=sys.stderr)

        if debug_mode:
            print(traceback.format_exc(), file=sys.stderr)

        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
