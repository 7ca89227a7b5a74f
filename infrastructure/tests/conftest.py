"""CDK tests need the aws-cdk-lib package and a Node.js runtime."""

try:
    import aws_cdk  # noqa: F401
except Exception:
    collect_ignore_glob = ["unit/*.py"]
