from boto3.dynamodb.conditions import Attr, Key


class ProductRepository:
    """
    Acceso a la tabla de productos (PK compuesta tenant_id + codigo).

    Los errores de boto3 (ClientError, BotoCoreError) no se capturan aquí;
    cada handler los convierte en un 500.
    """

    def __init__(self, table, index_name=None):
        self.table = table
        self.index_name = index_name

    @staticmethod
    def key(tenant_id, codigo):
        return {"tenant_id": tenant_id, "codigo": codigo}

    def get(self, tenant_id, codigo):
        resp = self.table.get_item(Key=self.key(tenant_id, codigo))
        return resp.get("Item")

    def put(self, item):
        self.table.put_item(Item=item)
        return item

    def update(self, tenant_id, codigo, assignments):
        # SET #campo = :campo por cada asignación del plan
        names = {}
        values = {}
        parts = []
        for i, (field, value) in enumerate(assignments):
            names[f"#f{i}"] = field
            values[f":v{i}"] = value
            parts.append(f"#f{i} = :v{i}")

        resp = self.table.update_item(
            Key=self.key(tenant_id, codigo),
            UpdateExpression="SET " + ", ".join(parts),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW"
        )
        return resp.get("Attributes")

    def delete(self, tenant_id, codigo):
        resp = self.table.delete_item(
            Key=self.key(tenant_id, codigo),
            ReturnValues="ALL_OLD"
        )
        return resp.get("Attributes")

    def query(self, tenant_id, limit, start_key=None, active_only=False):
        qargs = {
            "KeyConditionExpression": Key("tenant_id").eq(tenant_id),
            "ScanIndexForward": False,  # más recientes primero
            "Limit": limit,
        }
        if self.index_name:
            qargs["IndexName"] = self.index_name
        if start_key:
            qargs["ExclusiveStartKey"] = start_key
        if active_only:
            qargs["FilterExpression"] = Attr("active").ne(False)

        resp = self.table.query(**qargs)
        return resp.get("Items", []), resp.get("LastEvaluatedKey")
