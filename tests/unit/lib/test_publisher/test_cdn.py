"""Unit tests for CloudFront invalidation."""

from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from blog_deploy.lib.publisher.cdn import create_cloudfront_client, invalidate, invalidation_paths


class TestInvalidationPaths:
    """Tests for invalidation_paths."""

    def test_paths_are_rooted_and_sorted(self) -> None:
        assert invalidation_paths(["index.html", "css/style.css"]) == ["/", "/css/style.css", "/index.html"]

    def test_prefix_is_prepended(self) -> None:
        assert invalidation_paths(["index.html"], prefix="blog/") == ["/blog/", "/blog/index.html"]

    def test_paths_are_url_encoded(self) -> None:
        assert invalidation_paths(["posts/hello world/about.html"]) == ["/posts/hello%20world/about.html"]

    def test_index_pages_also_invalidate_directory_url(self) -> None:
        paths = invalidation_paths(["posts/hello/index.html", "index.html"])

        assert paths == ["/", "/index.html", "/posts/hello/", "/posts/hello/index.html"]

    def test_only_exact_index_files_add_directory(self) -> None:
        assert invalidation_paths(["posts/myindex.html"]) == ["/posts/myindex.html"]

    def test_directory_urls_count_toward_limit(self) -> None:
        assert invalidation_paths(["a/index.html", "b/index.html"], path_limit=3) == ["/*"]

    def test_wildcard_above_limit(self) -> None:
        assert invalidation_paths([f"{i}.html" for i in range(11)], path_limit=10) == ["/*"]


class TestInvalidate:
    """Tests for invalidate."""

    def test_submits_one_request(self) -> None:
        client = MagicMock()
        client.create_invalidation.return_value = {"Invalidation": {"Id": "I2J0I21PCUYOIK"}}

        invalidation_id = invalidate(client, "E2EXAMPLE", ["index.html", "old.html"])

        assert invalidation_id == "I2J0I21PCUYOIK"
        client.create_invalidation.assert_called_once()
        kwargs = client.create_invalidation.call_args.kwargs
        assert kwargs["DistributionId"] == "E2EXAMPLE"
        batch = kwargs["InvalidationBatch"]
        assert batch["Paths"] == {"Quantity": 3, "Items": ["/", "/index.html", "/old.html"]}
        assert batch["CallerReference"].startswith("blog-deploy-")

    def test_no_changes_skips_request(self) -> None:
        client = MagicMock()

        assert invalidate(client, "E2EXAMPLE", []) is None
        client.create_invalidation.assert_not_called()

    def test_failure_is_swallowed(self) -> None:
        client = MagicMock()
        client.create_invalidation.side_effect = ClientError(
            {"Error": {"Code": "NoSuchDistribution", "Message": "missing"}}, "CreateInvalidation"
        )

        assert invalidate(client, "E2EXAMPLE", ["index.html"]) is None


class TestCreateCloudfrontClient:
    """Tests for create_cloudfront_client."""

    def test_returns_client(self) -> None:
        client = create_cloudfront_client()
        assert hasattr(client, "create_invalidation")
