"""Package an `npm pack` bundle from S3 into a deployable zip."""

from lambdapack import archive_project


def package_release() -> None:
    location = archive_project(
        "s3://my-artifacts/builds/my-function-1.4.2.tgz",
        "s3://my-artifacts/releases",
        cache_uri="s3://my-build-cache/modules",
    )
    print(f"uploaded {location}")


def package_locally() -> None:
    location = archive_project("dist/my-function-1.4.2.tgz", "dist/", keep=True)
    print(f"wrote {location}")


if __name__ == "__main__":
    package_locally()
