import os
from dataclasses import dataclass

import boto3
from dotenv import load_dotenv

DEFAULT_REGION = 'us-east-1'
DEFAULT_FILENAME = 'test-upload.txt'
PRESIGN_EXPIRES_IN = 15 * 60

REQUIRED_VARS = ('AWS_ACCESS_KEY_ID', 'AWS_SECRET_ACCESS_KEY', 'AWS_BUCKET_NAME')

LEGACY_PROFILE = 'legacy'
DEFAULT_PROFILE = 'default'

PROFILES = {
    LEGACY_PROFILE: 'SigV4, path-style, checksums only when required (plain PutObject body)',
    DEFAULT_PROFILE: 'SDK defaults, flexible checksums sent as aws-chunked trailers',
}


class SettingsError(Exception):
    pass


@dataclass
class S3Settings:
    access_key_id: str
    secret_access_key: str
    region: str
    bucket_name: str
    endpoint_url: str = None
    environment: str = ''

    @classmethod
    def from_env(cls, environ=None):
        if environ is None:
            environ = os.environ
        missing = [name for name in REQUIRED_VARS if not environ.get(name)]
        if missing:
            raise SettingsError('Missing required environment variables: ' + ', '.join(missing))
        return cls(access_key_id=environ['AWS_ACCESS_KEY_ID'],
                   secret_access_key=environ['AWS_SECRET_ACCESS_KEY'],
                   region=environ.get('AWS_DEFAULT_REGION') or DEFAULT_REGION,
                   bucket_name=environ['AWS_BUCKET_NAME'],
                   endpoint_url=environ.get('AWS_ENDPOINT_URL') or None,
                   environment=environ.get('ENV', ''))

    def masked_secret(self):
        return self.secret_access_key[:5] + '***'


def load_settings(env_file='.env'):
    """
    Read settings from the process environment, after loading env_file
    into it when that file exists. Variables already set are not overridden.
    """
    if env_file and os.path.exists(env_file):
        load_dotenv(env_file)
    else:
        print("Warning: could not load env file '{}', falling back to system environment variables".format(env_file))
    return S3Settings.from_env()


def _client(settings, config):
    return boto3.client('s3',
                        endpoint_url=settings.endpoint_url,
                        aws_access_key_id=settings.access_key_id,
                        aws_secret_access_key=settings.secret_access_key,
                        region_name=settings.region,
                        config=config
                        )


def get_legacy_client(settings):
    config = boto3.session.Config(signature_version='s3v4',
                                  s3={'addressing_style': 'path'},
                                  request_checksum_calculation='when_required',
                                  response_checksum_validation='when_required')
    return _client(settings, config)


def get_default_client(settings):
    if settings.endpoint_url:
        config = boto3.session.Config(s3={'addressing_style': 'path'})
    else:
        config = boto3.session.Config()
    return _client(settings, config)


def get_client(settings, profile):
    if profile == LEGACY_PROFILE:
        return get_legacy_client(settings)
    if profile == DEFAULT_PROFILE:
        return get_default_client(settings)
    raise ValueError('unknown client profile: {!r}'.format(profile))


def get_res_body(response):
    body = response['Body']
    got = body.read()
    if type(got) is bytes:
        got = got.decode()
    return got
