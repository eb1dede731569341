import os
from dataclasses import dataclass
from typing import Optional, Tuple

import boto3

from ms_catalogo.auth import TokenVerifier
from ms_catalogo.images import ImageStore
from ms_catalogo.repository import ProductRepository

DELETE_POLICIES = ("soft", "hard")


@dataclass(frozen=True)
class CatalogConfig:
    table_name: str = "Products"
    list_index_name: Optional[str] = None
    bucket_name: str = "products-images"
    image_namespace: str = "productos"
    public_base_url: Optional[str] = None
    jwt_secret: Optional[str] = None
    jwt_algorithms: Tuple[str, ...] = ("HS256",)
    tenant_claim: str = "tenant_id"
    code_prefix: str = "MED"
    delete_policy: str = "soft"
    stage: str = "dev"

    @property
    def debug(self):
        return self.stage.lower() not in ("prod", "production")

    @property
    def soft_delete(self):
        return self.delete_policy == "soft"

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        policy = env.get("DELETE_POLICY", "soft").strip().lower()
        if policy not in DELETE_POLICIES:
            raise ValueError(f"DELETE_POLICY must be one of {DELETE_POLICIES}, got {policy!r}")
        algorithms = tuple(a.strip() for a in env.get("JWT_ALGORITHMS", "HS256").split(",") if a.strip())
        return cls(
            table_name=env.get("PRODUCTS_TABLE") or env.get("TABLE_NAME") or "Products",
            list_index_name=env.get("PRODUCTS_INDEX") or None,
            bucket_name=env.get("IMAGES_BUCKET", "products-images"),
            image_namespace=env.get("IMAGES_PREFIX", "productos"),
            public_base_url=env.get("IMAGES_PUBLIC_BASE_URL") or None,
            jwt_secret=env.get("JWT_SECRET") or None,
            jwt_algorithms=algorithms or ("HS256",),
            tenant_claim=env.get("TENANT_CLAIM", "tenant_id"),
            code_prefix=env.get("PRODUCT_CODE_PREFIX", "MED"),
            delete_policy=policy,
            stage=env.get("STAGE", "dev"),
        )


@dataclass
class CatalogDeps:
    config: CatalogConfig
    products: ProductRepository
    images: ImageStore
    verifier: TokenVerifier


def build_deps(config, dynamodb=None, s3=None):
    """Wire the collaborators for ``config``; boto3 clients are created when not given."""
    dynamodb = dynamodb or boto3.resource("dynamodb")
    s3 = s3 or boto3.client("s3")
    return CatalogDeps(
        config=config,
        products=ProductRepository(dynamodb.Table(config.table_name), config.list_index_name),
        images=ImageStore(s3, config.bucket_name, config.image_namespace, config.public_base_url),
        verifier=TokenVerifier(config.jwt_secret, config.jwt_algorithms, config.tenant_claim),
    )


_default_deps = None


def get_deps():
    # se construye una vez por contenedor (cold start)
    global _default_deps
    if _default_deps is None:
        _default_deps = build_deps(CatalogConfig.from_env())
    return _default_deps
