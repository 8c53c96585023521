import datetime
import random
import string

import pytz

ALPHABET = string.ascii_letters + string.digits + '_-'
KEY_ID_SIZE = 15
DEFAULT_EXTENSION = 'jpg'
DEV_ENVIRONMENTS = ('dev', 'development')
DEV_PREFIX = 'dev/'

# os.urandom backed, no internal state shared between calls
_system_random = random.SystemRandom()


class GenerationError(Exception):
    pass


def local_clock():
    return datetime.datetime.now()


def utc_clock():
    return datetime.datetime.now(pytz.utc)


def generate_id(size=KEY_ID_SIZE, random_source=None):
    if random_source is None:
        random_source = _system_random
    try:
        return ''.join(random_source.choice(ALPHABET) for _ in range(size))
    except (OSError, NotImplementedError) as e:
        raise GenerationError('failed to generate key id: {}'.format(e)) from e


def generate_image_key(filename, clock=None, random_source=None):
    """
    Build "YYYYMM/<id>.<ext>" for an upload.

    The extension is whatever follows the last '.', case kept as given;
    names without a '.' fall back to 'jpg'.
    """
    if clock is None:
        clock = local_clock
    parts = filename.split('.')
    ext = DEFAULT_EXTENSION
    if len(parts) > 1:
        ext = parts[-1]

    now = clock()
    year_month = '{:04d}{:02d}'.format(now.year, now.month)
    key_id = generate_id(KEY_ID_SIZE, random_source)
    return '{}/{}.{}'.format(year_month, key_id, ext)


def allocate_key(filename, environment, clock=None, random_source=None):
    key = generate_image_key(filename, clock=clock, random_source=random_source)
    # exact, case-sensitive match: 'Dev' stays unprefixed
    if environment in DEV_ENVIRONMENTS:
        return DEV_PREFIX + key
    return key


class KeyAllocator:
    """Key allocator bound to a clock and a random source."""

    def __init__(self, clock=None, random_source=None):
        self.clock = clock or local_clock
        self.random_source = random_source or _system_random

    def allocate(self, filename, environment):
        return allocate_key(filename, environment, clock=self.clock, random_source=self.random_source)
