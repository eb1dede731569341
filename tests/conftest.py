"""Shared fixtures: in-memory DynamoDB table and S3 client, tokens, events."""

import base64
import copy
import json
import time

import pytest
from botocore.exceptions import ClientError
from jose import jwt

from ms_catalogo.config import CatalogConfig, build_deps

SECRET = "test-secret"
BUCKET = "test-bucket"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x01" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x02" * 32
GIF_BYTES = b"GIF89a" + b"\x03" * 32
WEBP_BYTES = b"RIFF\x24\x00\x00\x00WEBPVP8 " + b"\x04" * 32


def b64(data):
    return base64.b64encode(data).decode("ascii")


class FakeTable:
    """Subset of the boto3 ``Table`` API used by ``ProductRepository``.

    Keys are ``(tenant_id, codigo)``; queries walk the partition ordered by
    ``codigo`` and return ``LastEvaluatedKey`` while items remain.
    """

    def __init__(self, name="Products"):
        self.name = name
        self.items = {}
        self.calls = []

    @staticmethod
    def _key(key):
        return key["tenant_id"], key["codigo"]

    def get_item(self, Key):
        self.calls.append(("get_item", Key))
        item = self.items.get(self._key(Key))
        return {"Item": copy.deepcopy(item)} if item else {}

    def put_item(self, Item):
        self.calls.append(("put_item", Item))
        self.items[self._key(Item)] = copy.deepcopy(Item)
        return {}

    def update_item(self, Key, UpdateExpression, ExpressionAttributeNames,
                    ExpressionAttributeValues, ReturnValues=None):
        self.calls.append(("update_item", Key, UpdateExpression))
        assert UpdateExpression.startswith("SET ")
        item = self.items.setdefault(self._key(Key), dict(Key))
        for part in UpdateExpression[len("SET "):].split(", "):
            name, value = (s.strip() for s in part.split("="))
            item[ExpressionAttributeNames[name]] = copy.deepcopy(ExpressionAttributeValues[value])
        return {"Attributes": copy.deepcopy(item)}

    def delete_item(self, Key, ReturnValues=None):
        self.calls.append(("delete_item", Key))
        old = self.items.pop(self._key(Key), None)
        return {"Attributes": old} if old else {}

    @staticmethod
    def _matches(item, condition):
        expression = condition.get_expression()
        attr, expected = expression["values"]
        if expression["operator"] == "=":
            return item.get(attr.name) == expected
        if expression["operator"] == "<>":
            return item.get(attr.name) != expected
        raise NotImplementedError(expression["operator"])

    def query(self, KeyConditionExpression, Limit, ScanIndexForward=True,
              ExclusiveStartKey=None, FilterExpression=None, IndexName=None):
        self.calls.append(("query", Limit, ExclusiveStartKey, IndexName))
        tenant_id = KeyConditionExpression.get_expression()["values"][1]
        partition = sorted(
            (item for (tenant, _), item in self.items.items() if tenant == tenant_id),
            key=lambda item: item["codigo"],
            reverse=not ScanIndexForward,
        )
        if ExclusiveStartKey:
            start = ExclusiveStartKey["codigo"]
            if ScanIndexForward:
                partition = [i for i in partition if i["codigo"] > start]
            else:
                partition = [i for i in partition if i["codigo"] < start]

        evaluated = partition[:Limit]
        items = [i for i in evaluated if FilterExpression is None or self._matches(i, FilterExpression)]
        resp = {"Items": copy.deepcopy(items), "Count": len(items)}
        if len(partition) > Limit:
            last = evaluated[-1]
            resp["LastEvaluatedKey"] = {"tenant_id": last["tenant_id"], "codigo": last["codigo"]}
        return resp


class FakeDynamoDB:
    def __init__(self):
        self.tables = {}

    def Table(self, name):
        return self.tables.setdefault(name, FakeTable(name))


def client_error(operation, code="AccessDenied"):
    return ClientError({"Error": {"Code": code, "Message": "denied"}}, operation)


class FakeS3:
    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail_puts = False
        self.fail_deletes = False

    def put_object(self, Bucket, Key, Body, ContentType, ACL=None):
        if self.fail_puts:
            raise client_error("PutObject")
        self.objects[(Bucket, Key)] = {"Body": Body, "ContentType": ContentType, "ACL": ACL}
        return {"ETag": '"fake"'}

    def delete_object(self, Bucket, Key):
        if self.fail_deletes:
            raise client_error("DeleteObject")
        self.deleted.append(Key)
        self.objects.pop((Bucket, Key), None)
        return {}

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        return (
            f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=fake"
        )


@pytest.fixture
def s3():
    return FakeS3()


@pytest.fixture
def dynamodb():
    return FakeDynamoDB()


@pytest.fixture
def config():
    return CatalogConfig(jwt_secret=SECRET, bucket_name=BUCKET, table_name="Products")


@pytest.fixture
def deps(config, dynamodb, s3):
    return build_deps(config, dynamodb=dynamodb, s3=s3)


@pytest.fixture
def table(deps):
    return deps.products.table


def make_token(tenant_id="farmacia-1", expires_in=3600, **claims):
    payload = {"sub": "user-1", "exp": int(time.time()) + expires_in}
    if tenant_id is not None:
        payload["tenant_id"] = tenant_id
    payload.update(claims)
    return jwt.encode(payload, SECRET, algorithm="HS256")


@pytest.fixture
def token():
    return make_token()


def api_event(method="GET", path="/productos", token=None, path_params=None,
              query=None, body=None, headers=None, resource=None):
    event_headers = {"Content-Type": "application/json"}
    if token:
        event_headers["Authorization"] = f"Bearer {token}"
    event_headers.update(headers or {})
    if body is not None and not isinstance(body, str):
        body = json.dumps(body)
    return {
        "httpMethod": method,
        "path": path,
        "resource": resource or path,
        "headers": event_headers,
        "pathParameters": path_params,
        "queryStringParameters": query,
        "body": body,
        "isBase64Encoded": False,
        "requestContext": {"resourcePath": resource or path},
    }


def body_of(resp):
    return json.loads(resp["body"])
