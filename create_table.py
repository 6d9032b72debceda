import os
import sys

import boto3
from botocore.exceptions import ClientError

# === CONFIG ===
REGION = os.environ.get("AWS_REGION", "us-east-1")
TABLES = [
    os.environ.get("PARTICIPANTS_TABLE", "matchnight_participants"),
    os.environ.get("MATCHES_TABLE", "matchnight_matches"),
    os.environ.get("EVENT_TABLE", "matchnight_event"),
]


def create_table(client, name: str) -> bool:
    """
    Create an on-demand table keyed by pk (S).
    Returns True if created, False if it already existed.
    """
    try:
        client.create_table(
            TableName=name,
            KeySchema=[{"AttributeName": "pk", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "pk", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] != "ResourceInUseException":
            raise
        return False
    client.get_waiter("table_exists").wait(TableName=name)
    return True


if __name__ == "__main__":
    client = boto3.client("dynamodb", region_name=REGION)
    names = sys.argv[1:] or TABLES
    for name in names:
        created = create_table(client, name)
        print(f"{name}: {'created' if created else 'already exists'}")
