"""Integration tests for the deploy service against moto-backed S3."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from blog_deploy.core.config import Settings
from blog_deploy.lib.publisher.errors import ListingError, TooManyDeletesError
from blog_deploy.services.deploy_service import deploy_site, plan_site

_BUCKET = "test-bucket"

_PLAIN_CONFIG = """\
[deployment]
order = [".jpg$", ".gif$"]

[[deployment.targets]]
name = "production"
URL = "s3://test-bucket?region=us-east-1"
cloudFrontDistributionID = "E2EXAMPLE"
exclude = "**.mp4"

[[deployment.matchers]]
pattern = "^.+\\\\.(png|jpg)$"
cacheControl = "max-age=31536000, no-transform, public"
"""


def _settings(site_dir: Path, config_path: Path, **overrides) -> Settings:
    values = {
        "site_dir": str(site_dir),
        "deployment_config": str(config_path),
        "retry_base_delay": 0,
        "workers": 1,
        **overrides,
    }
    return Settings(_env_file=None, **values)


@pytest.fixture
def plain_config(tmp_path: Path) -> Path:
    path = tmp_path / "plain.toml"
    path.write_text(_PLAIN_CONFIG)
    return path


def _cdn() -> MagicMock:
    cdn = MagicMock()
    cdn.create_invalidation.return_value = {"Invalidation": {"Id": "INV123"}}
    return cdn


class TestDeploySite:
    """End-to-end deploy runs."""

    def test_first_deploy_uploads_everything(self, s3_client, site_dir: Path, plain_config: Path) -> None:
        cdn = _cdn()

        result = deploy_site(_settings(site_dir, plain_config), s3_client=s3_client, cdn_client=cdn)

        assert result.uploaded[:2] == ["images/avatar.jpg", "images/spinner.gif"]
        assert len(result.uploaded) == 5
        assert result.invalidation_id == "INV123"
        assert cdn.create_invalidation.call_args.kwargs["DistributionId"] == "E2EXAMPLE"

        head = s3_client.head_object(Bucket=_BUCKET, Key="images/avatar.jpg")
        assert head["CacheControl"] == "max-age=31536000, no-transform, public"
        assert head["ContentType"] == "image/jpeg"
        index = s3_client.head_object(Bucket=_BUCKET, Key="index.html")
        assert index["ContentType"] == "text/html"
        assert "CacheControl" not in index

    def test_redeploy_is_idempotent(self, s3_client, site_dir: Path, plain_config: Path) -> None:
        settings = _settings(site_dir, plain_config)
        deploy_site(settings, s3_client=s3_client, cdn_client=_cdn())
        cdn = _cdn()

        result = deploy_site(settings, s3_client=s3_client, cdn_client=cdn)

        assert result.uploaded == []
        assert result.deleted == []
        assert result.unchanged == 5
        cdn.create_invalidation.assert_not_called()

    def test_changed_file_is_reuploaded(self, s3_client, site_dir: Path, plain_config: Path) -> None:
        settings = _settings(site_dir, plain_config)
        deploy_site(settings, s3_client=s3_client, cdn_client=_cdn())
        (site_dir / "index.html").write_text("<html><body>updated</body></html>")
        cdn = _cdn()

        result = deploy_site(settings, s3_client=s3_client, cdn_client=cdn)

        assert result.uploaded == ["index.html"]
        items = cdn.create_invalidation.call_args.kwargs["InvalidationBatch"]["Paths"]["Items"]
        assert items == ["/", "/index.html"]

    def test_removed_file_is_deleted(self, s3_client, site_dir: Path, plain_config: Path) -> None:
        settings = _settings(site_dir, plain_config, max_deletes=-1)
        deploy_site(settings, s3_client=s3_client, cdn_client=_cdn())
        (site_dir / "posts" / "hello" / "index.html").unlink()

        result = deploy_site(settings, s3_client=s3_client, cdn_client=_cdn())

        assert result.uploaded == []
        assert result.deleted == ["posts/hello/index.html"]
        keys = [obj["Key"] for obj in s3_client.list_objects_v2(Bucket=_BUCKET)["Contents"]]
        assert "posts/hello/index.html" not in keys

        rerun = plan_site(settings, s3_client=s3_client)
        assert rerun.plan.is_empty

    def test_excluded_remote_files_are_kept(self, s3_client, site_dir: Path, plain_config: Path) -> None:
        s3_client.put_object(Bucket=_BUCKET, Key="videos/talk.mp4", Body=b"video")

        deploy_site(_settings(site_dir, plain_config, max_deletes=0), s3_client=s3_client, cdn_client=_cdn())

        s3_client.head_object(Bucket=_BUCKET, Key="videos/talk.mp4")

    def test_delete_guard_blocks_all_mutation(self, s3_client, site_dir: Path, plain_config: Path) -> None:
        s3_client.put_object(Bucket=_BUCKET, Key="old-1.html", Body=b"1")
        s3_client.put_object(Bucket=_BUCKET, Key="old-2.html", Body=b"2")

        with pytest.raises(TooManyDeletesError):
            deploy_site(_settings(site_dir, plain_config, max_deletes=1), s3_client=s3_client, cdn_client=_cdn())

        keys = sorted(obj["Key"] for obj in s3_client.list_objects_v2(Bucket=_BUCKET)["Contents"])
        assert keys == ["old-1.html", "old-2.html"]

    def test_dry_run_reports_without_mutation(self, s3_client, site_dir: Path, plain_config: Path) -> None:
        cdn = _cdn()

        result = deploy_site(_settings(site_dir, plain_config), dry_run=True, s3_client=s3_client, cdn_client=cdn)

        assert result.dry_run
        assert len(result.uploaded) == 5
        assert "Contents" not in s3_client.list_objects_v2(Bucket=_BUCKET)
        cdn.create_invalidation.assert_not_called()

    def test_force_reuploads_unchanged(self, s3_client, site_dir: Path, plain_config: Path) -> None:
        settings = _settings(site_dir, plain_config)
        deploy_site(settings, s3_client=s3_client, cdn_client=_cdn())

        result = deploy_site(settings, force=True, s3_client=s3_client, cdn_client=_cdn())

        assert len(result.uploaded) == 5

    def test_invalidation_disabled(self, s3_client, site_dir: Path, plain_config: Path) -> None:
        cdn = _cdn()

        result = deploy_site(
            _settings(site_dir, plain_config, invalidate_cdn=False), s3_client=s3_client, cdn_client=cdn
        )

        assert result.invalidation_id is None
        cdn.create_invalidation.assert_not_called()

    def test_prefix_override(self, s3_client, site_dir: Path, plain_config: Path) -> None:
        deploy_site(_settings(site_dir, plain_config, deploy_prefix="blog"), s3_client=s3_client, cdn_client=_cdn())

        keys = [obj["Key"] for obj in s3_client.list_objects_v2(Bucket=_BUCKET)["Contents"]]
        assert all(k.startswith("blog/") for k in keys)
        assert len(keys) == 5

    def test_gzip_matcher_sets_content_encoding(
        self, s3_client, site_dir: Path, deployment_config: Path
    ) -> None:
        deploy_site(_settings(site_dir, deployment_config), s3_client=s3_client, cdn_client=_cdn())

        head = s3_client.head_object(Bucket=_BUCKET, Key="css/style.css")
        assert head["ContentEncoding"] == "gzip"
        assert head["ContentType"] == "text/css"

    def test_missing_site_dir_fails_before_mutation(self, s3_client, tmp_path: Path, plain_config: Path) -> None:
        with pytest.raises(ListingError):
            deploy_site(_settings(tmp_path / "nope", plain_config), s3_client=s3_client, cdn_client=_cdn())

        assert "Contents" not in s3_client.list_objects_v2(Bucket=_BUCKET)
