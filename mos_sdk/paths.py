from typing import Optional

API_PREFIX = "/api/v1"


def object_path(project_id: str, bucket_name: str, filename: Optional[str] = None) -> str:
    # segments go in as given; the server owns validation
    base = f"{API_PREFIX}/projects/{project_id}/buckets/{bucket_name}/objects"
    if filename is None:
        return base
    return f"{base}/{filename}"


def public_object_url(base_url: str, project_id: str, bucket_name: str, filename: str) -> str:
    """Unsigned URL for an object in a public bucket.

    It never expires and anyone holding it can fetch the object, so it gives
    no confidentiality at all. Use presigned URLs for anything private.
    """
    return f"{base_url}{API_PREFIX}/public/projects/{project_id}/buckets/{bucket_name}/{filename}"
