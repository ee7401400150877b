# services -- clients for external systems
#
# Modules:
#   category_rpc_client -- JSON-RPC admin/category service (httpx)
#   s3_client           -- object storage: presigned uploads + results cache (boto3)
