"""Build (or reuse) the node_modules archive for a local package.json."""

from pathlib import Path

from lambdapack import DependencyArchiveBuilder, PackagerConfig, StructuredLogger
from lambdapack.cache import open_s3_cache
from lambdapack.observability import stream_sink


def build_modules(manifest: Path, cache_uri: str | None = None) -> None:
    config = PackagerConfig.from_env(log_sink=stream_sink())
    builder = DependencyArchiveBuilder(config, logger=StructuredLogger(sink=config.log_sink))
    cache = open_s3_cache(cache_uri) if cache_uri else None

    result = builder.build(manifest, work_dir=Path("build"), cache=cache, materialize=True)
    print(f"{result.archive_name} (cache hit: {result.cache_hit})")


if __name__ == "__main__":
    build_modules(Path("package.json"), "s3://my-build-cache/modules")
