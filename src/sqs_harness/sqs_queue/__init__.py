"""
Package: sqs_queue
Description: Queue service client.

Provides the async SQS JSON-protocol client, its error taxonomy,
request signing, retry policy and body digest checks.
"""
