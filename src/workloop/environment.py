'''Routines for configuring loops and logging from the environment'''

import logging
import logging.config
import multiprocessing
import os
import re

import yaml

from .loop import Loop

log = logging.getLogger(__name__)


class LoopEnvironment:
    '''A class to encapsulate the environment in which loops are instantiated; this
    controls how command-line arguments, environment variables and configuration files
    are used to set up loops. Settings are looked up in order of precedence:
      1. command-line arguments
      2. environment variables
      3. the ``workloop`` section of a YAML configuration file
      4. defaults
    '''

    env_prefix = 'WORKLOOP'
    arg_prefix = 'loop'
    config_section = 'workloop'

    def __init__(self):
        self.environ = os.environ
        self.args = None
        self.verbosity = None
        self._config = None
        self._config_filename = None

    def env_name(self, name):
        return '{}_{}'.format(self.env_prefix, name.upper())

    def arg_name(self, name):
        return '{}_{}'.format(self.arg_prefix, name)

    def arg_flag(self, name):
        return '--{}-{}'.format(self.arg_prefix, re.sub('_', '-', name))

    @staticmethod
    def parse_bool(value):
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ('1', 'true', 'yes', 'on'):
            return True
        elif text in ('0', 'false', 'no', 'off', ''):
            return False
        raise ValueError('{!r} is not a boolean'.format(value))

    @property
    def config_filename(self):
        return getattr(self.args, self.arg_name('config'), None) or self.environ.get(self.env_name('config'))

    def read_config(self, filename=None):
        '''Load settings from the ``workloop`` section of the YAML file ``filename`` (by
        default the one named on the command line or in the environment).'''
        filename = filename or self.config_filename
        self._config_filename = filename
        if not filename:
            self._config = {}
            return self._config

        with open(filename, 'rt') as config_file:
            document = yaml.safe_load(config_file) or {}

        if not isinstance(document, dict):
            raise ValueError('configuration file {!r} must contain a mapping'.format(filename))
        section = document.get(self.config_section, {}) or {}
        if not isinstance(section, dict):
            raise ValueError('{!r} section of {!r} must be a mapping'.format(self.config_section, filename))

        log.debug('read configuration from {!r}: {!r}'.format(filename, section))
        self._config = section
        return section

    @property
    def config(self):
        if self._config is None or self._config_filename != self.config_filename:
            self.read_config()
        return self._config

    def get_val(self, name, default=None, type_=None):
        envname = self.env_name(name)
        argname = self.arg_name(name)

        val = getattr(self.args, argname, None)
        if val is None:
            try:
                val = self.environ[envname]
            except KeyError:
                val = self.config.get(name, default)

        if type_ is None or val is None:
            return val
        else:
            try:
                return type_(val)
            except ValueError as e:
                raise ValueError('cannot convert {!r} to {!r} for {}: {!s}'.format(val, type_, name, e))

    def add_loop_args(self, parser):
        group = parser.add_argument_group('loop options')
        group.add_argument(
            self.arg_flag('config'),
            metavar='CONFIG_FILE',
            help='read loop settings from the "{}" section of the YAML file CONFIG_FILE'.format(self.config_section),
        )
        group.add_argument(
            self.arg_flag('tick_interval'),
            metavar='SECONDS',
            type=float,
            help='dispatch queued work every SECONDS seconds (default: 0.01)',
        )
        group.add_argument(
            self.arg_flag('start_method'),
            metavar='METHOD',
            choices=multiprocessing.get_all_start_methods(),
            help='start execution contexts with this multiprocessing start method (default: platform default)',
        )
        group.add_argument(
            self.arg_flag('shutdown_timeout'),
            metavar='SECONDS',
            type=float,
            help='wait SECONDS for a finished context to exit before killing it (default: 1)',
        )
        group.add_argument(
            self.arg_flag('no_repoke'),
            dest=self.arg_name('repoke'),
            action='store_const',
            const=False,
            help='post arguments to each context once only, instead of on every tick',
        )

    def process_loop_args(self, args):
        self.args = args

    def add_args(self, parser):
        '''Add verbosity switches and loop options to ``parser``.'''
        group = parser.add_argument_group('general options')
        egroup = group.add_mutually_exclusive_group()
        egroup.add_argument(
            '--quiet', dest='verbosity', action='store_const', const='quiet', help='emit only essential information'
        )
        egroup.add_argument(
            '--verbose', dest='verbosity', action='store_const', const='verbose', help='emit extra information'
        )
        egroup.add_argument(
            '--debug', dest='verbosity', action='store_const', const='debug', help='enable extra checks and emit copious information'
        )
        self.add_loop_args(parser)

    def process_args(self, args):
        self.verbosity = getattr(args, 'verbosity', None)
        self.process_loop_args(args)
        self.config_logging()

    def config_logging(self):
        logging_config = {
            'version': 1,
            'incremental': False,
            'disable_existing_loggers': False,
            'formatters': {
                'standard': {'format': '-- %(levelname)-8s [%(name)s] -- %(message)s'},
                'debug': {
                    'format': '''\
-- %(levelname)-8s %(asctime)24s PID %(process)-12d TID %(thread)-20d
   from logger "%(name)s"
   at location %(pathname)s:%(lineno)d [%(funcName)s()]
   ::
   %(message)s
'''
                },
            },
            'handlers': {'console': {'class': 'logging.StreamHandler', 'stream': 'ext://sys.stderr', 'formatter': 'standard'}},
            'loggers': {
                'workloop': {'handlers': ['console'], 'propagate': False},
                'multiprocessing': {'handlers': ['console'], 'propagate': False},
            },
            'root': {'handlers': ['console']},
        }

        if self.verbosity == 'debug':
            logging_config['root']['level'] = 'DEBUG'
            logging_config['loggers']['workloop']['level'] = 'DEBUG'
            logging_config['loggers']['multiprocessing']['level'] = 'DEBUG'
            logging_config['handlers']['console']['formatter'] = 'debug'
        elif self.verbosity == 'verbose':
            logging_config['root']['level'] = 'INFO'
            logging_config['loggers']['workloop']['level'] = 'INFO'
        else:
            logging_config['root']['level'] = 'WARNING'
            logging_config['loggers']['workloop']['level'] = 'WARNING'

        logging.config.dictConfig(logging_config)

    def make_loop(self):
        '''Using cues from the environment, instantiate a pre-configured loop.'''
        return Loop.from_environ(self)


default_env = LoopEnvironment()
make_loop = default_env.make_loop
add_loop_args = default_env.add_loop_args
process_loop_args = default_env.process_loop_args
