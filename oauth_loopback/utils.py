import threading


class OAuthLoopbackException ( Exception ):
    '''Exception type used for various errors in the oauth-loopback package.'''

    def __init__(self, message, code=None):
        """
        Initialize the exception with a message and an optional status code.

        Args:
            message (str): The error message.
            code (int, optional): An optional HTTP status code associated with the error. Defaults to None.
        """
        super().__init__(message)
        self.code = code


class BindError( OAuthLoopbackException ):
    '''No local endpoint could be bound after the allowed number of attempts.'''
    pass


class ValidationError( OAuthLoopbackException ):
    '''The redirect query is malformed or ambiguous.'''
    pass


class ListenerStateError( OAuthLoopbackException ):
    '''The listener was used in a state that does not allow the operation.'''
    pass


class NotListeningError( ListenerStateError ):
    '''The listener endpoint was requested while the listener is not listening.'''
    pass


class CredentialsError( OAuthLoopbackException ):
    '''The OAuth2 client credentials file is missing or invalid.'''
    pass


class AuthorizationError( OAuthLoopbackException ):
    '''The authorization attempt did not produce an authorization code.'''
    pass


class FutureOutcome( object ):
    '''Single-slot handoff of an AuthorizationOutcome from the listener thread.

    The first call to set() wins, further calls are ignored. Pass the bound
    set method as the listener callback and read the result from any thread.
    '''

    def __init__( self ):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._outcome = None

    def set( self, outcome ):
        '''Store the outcome if none was stored yet.

        Returns:
            True if this call stored the outcome.
        '''
        with self._lock:
            if self._event.is_set():
                return False
            self._outcome = outcome
            self._event.set()
            return True

    def has_outcome( self ):
        return self._event.is_set()

    def get( self ):
        '''Return the captured outcome or None, without blocking.'''
        with self._lock:
            return self._outcome

    def wait( self, timeout = None ):
        '''Block until an outcome is captured.

        Args:
            timeout (float): number of seconds to block for, None blocks forever.

        Returns:
            the outcome, or None if timeout is reached.
        '''
        if self._event.wait( timeout = timeout ):
            return self.get()
        return None
