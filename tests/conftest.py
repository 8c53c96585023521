import datetime
import random

import pytest
from moto import mock_aws

from key_allocator import KeyAllocator
from s3_clients import S3Settings, get_legacy_client

BUCKET_NAME = 'sdk-compare-bucket'

AWS_TEST_ENV = {
    'AWS_ACCESS_KEY_ID': 'testing',
    'AWS_SECRET_ACCESS_KEY': 'testing-secret',
    'AWS_DEFAULT_REGION': 'us-east-1',
    'AWS_BUCKET_NAME': BUCKET_NAME,
}


@pytest.fixture
def aws_env(monkeypatch):
    for name, value in AWS_TEST_ENV.items():
        monkeypatch.setenv(name, value)
    for name in ('AWS_ENDPOINT_URL', 'ENV', 'AWS_REQUEST_CHECKSUM_CALCULATION',
                 'AWS_RESPONSE_CHECKSUM_VALIDATION'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    return S3Settings(access_key_id='testing',
                      secret_access_key='testing-secret',
                      region='us-east-1',
                      bucket_name=BUCKET_NAME)


@pytest.fixture
def s3_backend(aws_env, settings):
    # no endpoint_url so moto intercepts the calls
    with mock_aws():
        client = get_legacy_client(settings)
        client.create_bucket(Bucket=BUCKET_NAME)
        yield client


@pytest.fixture
def fixed_clock():
    return lambda: datetime.datetime(2024, 3, 15, 12, 30)


@pytest.fixture
def seeded_random():
    return random.Random(1234)


@pytest.fixture
def allocator(fixed_clock, seeded_random):
    return KeyAllocator(clock=fixed_clock, random_source=seeded_random)
