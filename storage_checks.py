"""
The upload / verify / soft-delete sequence run against one S3 client.

Every step prints its own report and is recorded as a CheckResult, so two
client profiles can be compared step by step after the fact.
"""
import datetime
from dataclasses import dataclass

import pytz
import requests
from botocore.exceptions import BotoCoreError, ClientError

from key_allocator import GenerationError, KeyAllocator
from s3_clients import DEFAULT_FILENAME, PRESIGN_EXPIRES_IN, PROFILES, get_res_body

OK = 'ok'
FAILED = 'failed'
SKIPPED = 'skipped'

DELETED_SUFFIX = '.deleted'
NOT_FOUND_CODES = ('404', 'NoSuchKey', 'NotFound')


class CheckFailed(Exception):
    pass


@dataclass
class CheckResult:
    step: int
    name: str
    status: str
    detail: str = ''

    @property
    def ok(self):
        return self.status == OK


def public_url(settings, key):
    if settings.endpoint_url:
        endpoint = settings.endpoint_url.rstrip('/')
        return '{}/{}/{}'.format(endpoint, settings.bucket_name, key)
    return 'https://{}.s3.{}.amazonaws.com/{}'.format(settings.bucket_name, settings.region, key)


def listing_prefix(key):
    # date or env prefix of the key, '' for keys without a folder
    parts = key.split('/')
    if len(parts) > 1:
        return parts[0] + '/'
    return ''


def deleted_key(key):
    return key + DELETED_SUFFIX


def upload_content(profile):
    return 'Hello from the {} client profile!\nThis object was uploaded by s3-sdk-compare.'.format(profile)


def _error_code(error):
    return error.response.get('Error', {}).get('Code', '')


class StorageCheckRun:

    def __init__(self, client, settings, profile, allocator=None, filename=DEFAULT_FILENAME, key=None,
                 fetch_urls=True):
        self.client = client
        self.settings = settings
        self.bucket_name = settings.bucket_name
        self.profile = profile
        self.allocator = allocator or KeyAllocator()
        self.filename = filename
        self.explicit_key = key
        self.key = key
        self.deleted_key = None
        self.original_deleted = False
        self.fetch_urls = fetch_urls
        self.body = upload_content(profile).encode('utf-8')
        self.results = []

    def _record(self, step, name, status, detail=''):
        result = CheckResult(step, name, status, detail)
        self.results.append(result)
        return result

    def _run_step(self, step, name, func):
        print('\n--- Test {}: {} ---'.format(step, name))
        try:
            detail = func()
        except (ClientError, BotoCoreError, requests.RequestException, GenerationError, CheckFailed) as e:
            print('✗ {} failed: {}'.format(name, e))
            return self._record(step, name, FAILED, str(e))
        return self._record(step, name, OK, detail or '')

    def _skip(self, step, name, reason):
        print('\n--- Test {}: {} ---'.format(step, name))
        print('Skipped:', reason)
        return self._record(step, name, SKIPPED, reason)

    def list_buckets(self):
        response = self.client.list_buckets()
        names = [bucket['Name'] for bucket in response.get('Buckets', [])]
        print('Successfully listed buckets: {} buckets found'.format(len(names)))
        for name in names:
            print('  -', name)
        return '{} buckets'.format(len(names))

    def head_bucket(self):
        self.client.head_bucket(Bucket=self.bucket_name)
        print("Bucket '{}' exists and is accessible".format(self.bucket_name))

    def generate_file_key(self):
        if self.explicit_key:
            self.key = self.explicit_key
            print('Using provided key:', self.key)
            return self.key
        self.key = self.allocator.allocate(self.filename, self.settings.environment)
        print('Generated file key:', self.key)
        return self.key

    def upload_file(self):
        print('Attempting upload with key:', self.key)
        try:
            self.client.put_object(Bucket=self.bucket_name, Key=self.key, Body=self.body,
                                   ContentType='text/plain', ContentLength=len(self.body))
        except (ClientError, BotoCoreError) as e:
            print('PutObject failed:', e)
            print('Trying minimal PutObject...')
            minimal_key = self.key + '-minimal'
            try:
                self.client.put_object(Bucket=self.bucket_name, Key=minimal_key, Body=self.body)
            except (ClientError, BotoCoreError) as minimal_error:
                print('Minimal PutObject also failed:', minimal_error)
                raise CheckFailed('upload failed with the {} profile: {}'.format(self.profile, minimal_error))
            self.key = minimal_key
            print('✓ Minimal PutObject succeeded with key: {} ({} bytes)'.format(self.key, len(self.body)))
            return 'minimal PutObject as {}'.format(self.key)
        print('✓ PutObject succeeded with key: {} ({} bytes)'.format(self.key, len(self.body)))
        return '{} bytes'.format(len(self.body))

    def verify_upload(self):
        waiter = self.client.get_waiter('object_exists')
        waiter.wait(Bucket=self.bucket_name, Key=self.key, WaiterConfig={'Delay': 1, 'MaxAttempts': 10})
        print('✓ Object exists and is accessible')

    def get_file_metadata(self):
        response = self.client.head_object(Bucket=self.bucket_name, Key=self.key)
        print('✓ File metadata retrieved:')
        print('  Content Length: {} bytes'.format(response['ContentLength']))
        print('  Last Modified:', response['LastModified'])
        print('  ETag:', response['ETag'])
        return 'ETag {}'.format(response['ETag'])

    def read_back(self):
        response = self.client.get_object(Bucket=self.bucket_name, Key=self.key)
        got = get_res_body(response)
        if got != self.body.decode('utf-8'):
            raise CheckFailed('downloaded body does not match the uploaded content')
        print('✓ Downloaded body matches ({} bytes)'.format(len(self.body)))

    def generate_public_url(self):
        url = public_url(self.settings, self.key)
        print('✓ Public URL:', url)
        return url

    def generate_presigned_url(self):
        url = self.client.generate_presigned_url('get_object',
                                                 Params={'Bucket': self.bucket_name, 'Key': self.key},
                                                 ExpiresIn=PRESIGN_EXPIRES_IN)
        expires = datetime.datetime.now(pytz.utc) + datetime.timedelta(seconds=PRESIGN_EXPIRES_IN)
        print('✓ Presigned URL:', url)
        print('  Expires: {}'.format(expires.strftime('%Y-%m-%dT%H:%M:%SZ')))
        if not self.fetch_urls:
            return url
        r = requests.get(url, timeout=30)
        if r.status_code != 200:
            raise CheckFailed('presigned GET returned HTTP {}'.format(r.status_code))
        print('✓ Presigned URL fetched: HTTP {} ({} bytes)'.format(r.status_code, len(r.content)))
        return url

    def list_files(self):
        prefix = listing_prefix(self.key)
        response = self.client.list_objects_v2(Bucket=self.bucket_name, Prefix=prefix, MaxKeys=10)
        contents = response.get('Contents', [])
        print("Found {} files with prefix '{}':".format(len(contents), prefix))
        for i, obj in enumerate(contents, 1):
            print('  {}. {} ({} bytes, {})'.format(i, obj['Key'], obj['Size'],
                                                  obj['LastModified'].strftime('%Y-%m-%d %H:%M:%S')))
        return '{} files'.format(len(contents))

    def soft_delete(self):
        target = deleted_key(self.key)
        self.client.copy_object(Bucket=self.bucket_name, Key=target,
                                CopySource={'Bucket': self.bucket_name, 'Key': self.key})
        self.deleted_key = target
        print('✓ File copied to deleted key:', self.deleted_key)
        self.client.delete_object(Bucket=self.bucket_name, Key=self.key)
        self.original_deleted = True
        print('✓ Original file deleted')

    def verify_soft_delete(self):
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=self.key)
        except ClientError as e:
            if _error_code(e) not in NOT_FOUND_CODES:
                raise
            print('✓ Original file no longer exists (expected)')
        else:
            raise CheckFailed('original file still exists')

        self.client.head_object(Bucket=self.bucket_name, Key=self.deleted_key or deleted_key(self.key))
        print('✓ Deleted file exists with {} suffix'.format(DELETED_SUFFIX))

    def cleanup(self):
        # whatever the soft delete left behind: the copy, the original, or both
        keys = []
        if not self.original_deleted:
            keys.append(self.key)
        if self.deleted_key:
            keys.append(self.deleted_key)
        for key in keys:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
            print('✓ Removed', key)
        print('✓ Cleanup complete')
        return ', '.join(keys)

    def _object_steps(self):
        return [
            ('Verify Upload', self.verify_upload),
            ('Get File Metadata', self.get_file_metadata),
            ('Read Back', self.read_back),
            ('Generate Public URL', self.generate_public_url),
            ('Generate Presigned URL', self.generate_presigned_url),
            ('List Files', self.list_files),
            ('Soft Delete', self.soft_delete),
            ('Verify Soft Delete', self.verify_soft_delete),
            ('Cleanup', self.cleanup),
        ]

    def run(self):
        print('\n=== Client profile: {} ({}) ==='.format(self.profile, PROFILES.get(self.profile, 'custom')))
        self._run_step(1, 'List Buckets', self.list_buckets)
        self._run_step(2, 'Head Bucket', self.head_bucket)

        generated = self._run_step(3, 'Generate File Key', self.generate_file_key)
        if generated.ok:
            uploaded = self._run_step(4, 'Upload File', self.upload_file)
        else:
            uploaded = self._skip(4, 'Upload File', 'no object key')

        for step, (name, func) in enumerate(self._object_steps(), 5):
            if uploaded.ok:
                self._run_step(step, name, func)
            else:
                self._skip(step, name, 'upload did not succeed')
        return self.results
