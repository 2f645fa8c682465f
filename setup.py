from setuptools import setup

__version__ = "1.0.0"
__author__ = "Maxime Lamothe-Brassard ( Refraction Point, Inc )"
__author_email__ = "maxime@refractionpoint.com"
__license__ = "Apache v2"
__copyright__ = "Copyright (c) 2020 Refraction Point, Inc"

setup( name = 'oauth-loopback',
       version = __version__,
       description = 'Loopback HTTP listener capturing OAuth2 authorization redirects',
       author = __author__,
       author_email = __author_email__,
       license = __license__,
       packages = [ 'oauth_loopback' ],
       zip_safe = True,
       python_requires = '>=3.8',
       install_requires = [ 'pyyaml', 'termcolor', 'orjson' ],
       extras_require = {
           'test': [ 'pytest', 'requests' ],
       },
       long_description = 'Local loopback HTTP listener that captures the authorization code or error of an OAuth2 consent flow for installed applications.',
       entry_points = {
           'console_scripts': [
               'oauth-loopback=oauth_loopback.__main__:main',
           ],
       },
)
