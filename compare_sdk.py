"""
Run the same S3 operation sequence with each boto3 client profile and
print which steps pass or fail for which profile.

    s3-sdk-compare --profile both --env-file .env
"""
import argparse
import sys

import boto3

from key_allocator import KeyAllocator, local_clock, utc_clock
from s3_clients import DEFAULT_FILENAME, PROFILES, SettingsError, get_client, load_settings
from storage_checks import FAILED, StorageCheckRun


def parse_args(argv=None):
    p = argparse.ArgumentParser(description='Compare S3 client profiles against one S3-compatible endpoint')
    p.add_argument('--profile', choices=sorted(PROFILES) + ['both'], default='both',
                   help='Client profile to run (default: both)')
    p.add_argument('--env-file', default='.env', help='Env file loaded before reading settings')
    p.add_argument('--filename', default=DEFAULT_FILENAME, help='File name the object key is allocated for')
    p.add_argument('--key', help='Use this object key instead of allocating one')
    p.add_argument('--utc', action='store_true', help='Allocate the key month from UTC instead of local time')
    p.add_argument('--no-fetch', action='store_true', help='Do not GET the presigned URL')
    p.add_argument('--debug', action='store_true', help='Log botocore requests and responses')
    return p.parse_args(argv)


def print_config(settings):
    print('AWS Config from environment:')
    print('  Access Key ID:', settings.access_key_id)
    print('  Secret Access Key: {} (length: {})'.format(settings.masked_secret(), len(settings.secret_access_key)))
    print('  Region:', settings.region)
    print('  Bucket:', settings.bucket_name)
    print('  Endpoint URL:', settings.endpoint_url or '(AWS default)')
    print('  Environment:', settings.environment)


def print_summary(runs):
    profiles = list(runs)
    rows = list(zip(*runs.values()))
    width = max(len(results[0].name) for results in rows) + 6
    print('\n--- Summary ---')
    print('{:<{w}}'.format('Step', w=width) + ''.join('{:<10}'.format(p) for p in profiles))
    for results in rows:
        name = '{}. {}'.format(results[0].step, results[0].name)
        print('{:<{w}}'.format(name, w=width) + ''.join('{:<10}'.format(r.status) for r in results))


def failed_profiles(runs):
    return [profile for profile, results in runs.items() if any(r.status == FAILED for r in results)]


def main(argv=None):
    args = parse_args(argv)
    if args.debug:
        boto3.set_stream_logger(name='botocore')

    try:
        settings = load_settings(args.env_file)
    except SettingsError as e:
        print('Error:', e)
        return 2
    print_config(settings)

    allocator = KeyAllocator(clock=utc_clock if args.utc else local_clock)
    if args.profile == 'both':
        profiles = list(PROFILES)
    else:
        profiles = [args.profile]

    runs = {}
    for profile in profiles:
        client = get_client(settings, profile)
        check_run = StorageCheckRun(client, settings, profile, allocator=allocator, filename=args.filename,
                                    key=args.key, fetch_urls=not args.no_fetch)
        runs[profile] = check_run.run()

    print_summary(runs)
    print('\n--- All Tests Complete ---')
    failed = failed_profiles(runs)
    if failed:
        print('Some tests failed with the following client profiles: ' + ', '.join(failed))
        return 1
    print('All S3 operations completed successfully with: ' + ', '.join(profiles))
    return 0


if __name__ == '__main__':
    sys.exit(main())
