# File: tests/test_batch.py
"""Batch pipeline: cleanup, bounded concurrency, abort on first failure, sitemap."""
from __future__ import annotations

import asyncio
import math
from datetime import datetime, timezone
from pathlib import Path

import pytest
from lxml import etree

from site_cache.auth import TokenAuth
from site_cache.batch import run_bounded
from site_cache.engine import SiteCache
from site_cache.errors import ConfigurationError, HttpNavigationError
from site_cache.job import Job
from site_cache.sitemap import SITEMAP_NS

URLS = ["http://example.com/", "http://example.com/about", "http://example.com/blog/post-1"]


def make_cache(site, observer) -> SiteCache:
    return SiteCache(session_factory=site.open, observer=observer)


def sitemap_locs(path: Path) -> list[str]:
    tree = etree.parse(str(path))
    return [loc.text for loc in tree.findall(f".//{{{SITEMAP_NS}}}loc")]


@pytest.mark.asyncio()
async def test_build_cache_writes_pages_and_sitemap(site, observer, tmp_path):
    # batch start measured on the same clock that stamps file mtimes
    marker = tmp_path / "started"
    marker.touch()
    started_ms = math.floor(marker.stat().st_mtime * 1000) / 1000
    dest = tmp_path / "cache"
    cache = make_cache(site, observer)

    result = await cache.build_cache({"dest": str(dest), "urls": URLS, "sitemap": {"base_url": "https://example.com/"}})

    assert [p.name for p in result.files] == ["index.html", "about.html", "blog-post-1.html"]
    assert all(p.exists() for p in result.files)
    assert result.sitemap == dest / "sitemap.xml"

    locs = sitemap_locs(result.sitemap)
    assert sorted(locs) == sorted(
        ["https://example.com/index.html", "https://example.com/about.html", "https://example.com/blog-post-1.html"]
    )
    tree = etree.parse(str(result.sitemap))
    for lastmod in tree.findall(f".//{{{SITEMAP_NS}}}lastmod"):
        moment = datetime.fromisoformat(lastmod.text.replace("Z", "+00:00"))
        assert moment >= datetime.fromtimestamp(started_ms, tz=timezone.utc)

    assert observer.named("batch_started") == [("batch_started", URLS)]
    assert len(observer.named("job_finished")) == 3
    assert observer.named("sitemap_written") == [("sitemap_written", dest / "sitemap.xml", 3)]


@pytest.mark.asyncio()
async def test_first_failure_aborts_remaining_jobs(site, observer, tmp_path):
    site.statuses[URLS[0]] = [500]
    cache = make_cache(site, observer)

    with pytest.raises(HttpNavigationError) as info:
        await cache.build_cache({"dest": str(tmp_path), "urls": URLS})

    assert info.value.url == URLS[0]
    assert info.value.status == 500
    assert site.navigated == [URLS[0]]
    assert not (tmp_path / "sitemap.xml").exists()
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio()
async def test_failure_in_the_middle_keeps_earlier_files(site, observer, tmp_path):
    site.statuses[URLS[1]] = [404]
    cache = make_cache(site, observer)

    with pytest.raises(HttpNavigationError):
        await cache.build_cache({"dest": str(tmp_path), "urls": URLS})

    assert site.navigated == URLS[:2]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["index.html"]


@pytest.mark.asyncio()
async def test_concurrency_bound_is_respected(site_factory, observer, tmp_path):
    site = site_factory(delay=0.05)
    urls = [f"http://example.com/p{i}" for i in range(6)]
    cache = make_cache(site, observer)

    result = await cache.build_cache({"dest": str(tmp_path), "urls": urls, "concurrency": 2})

    assert len(result.files) == 6
    assert site.max_in_flight == 2
    assert site.navigated[:2] == urls[:2]


@pytest.mark.asyncio()
async def test_sequential_by_default(site_factory, observer, tmp_path):
    site = site_factory(delay=0.01)
    cache = make_cache(site, observer)

    await cache.build_cache({"dest": str(tmp_path), "urls": URLS})

    assert site.max_in_flight == 1
    assert site.navigated == URLS


@pytest.mark.asyncio()
async def test_clean_dest_removes_old_content_only(site, observer, tmp_path):
    dest = tmp_path / "cache"
    (dest / "old").mkdir(parents=True)
    (dest / "old" / "stale.html").write_text("old", encoding="utf-8")
    (dest / "unrelated.txt").write_text("x", encoding="utf-8")
    cache = make_cache(site, observer)

    result = await cache.build_cache({"dest": str(dest), "urls": URLS[:1], "clean_dest": True})

    assert dest.is_dir()
    assert sorted(p.name for p in dest.iterdir()) == ["index.html", "sitemap.xml"]
    assert sitemap_locs(result.sitemap) == ["http://localhost/index.html"]


@pytest.mark.asyncio()
async def test_without_clean_old_pages_stay_in_sitemap(site, observer, tmp_path):
    (tmp_path / "legacy.html").write_text("<html></html>", encoding="utf-8")
    cache = make_cache(site, observer)

    result = await cache.build_cache({"dest": str(tmp_path), "urls": URLS[:1]})

    assert sorted(sitemap_locs(result.sitemap)) == ["http://localhost/index.html", "http://localhost/legacy.html"]


@pytest.mark.asyncio()
async def test_sitemap_can_be_disabled(site, observer, tmp_path):
    cache = make_cache(site, observer)
    result = await cache.build_cache({"dest": str(tmp_path), "urls": URLS[:1], "sitemap": {"enabled": False}})

    assert result.sitemap is None
    assert not (tmp_path / "sitemap.xml").exists()


@pytest.mark.asyncio()
@pytest.mark.parametrize("config", [None, {}, {"dest": ""}, {"dest": "out", "concurrency": 0}])
async def test_invalid_config_fails_before_any_io(site, observer, config):
    cache = make_cache(site, observer)
    with pytest.raises(ConfigurationError):
        await cache.build_cache(config)
    assert site.opened == []


@pytest.mark.asyncio()
async def test_auth_failure_fails_job(site, observer, tmp_path):
    class Broken:
        async def authenticate(self, session_config, runner):
            raise PermissionError("login rejected")

    jobs = [Job(url=URLS[0], dest=tmp_path, auth=Broken()), Job(url=URLS[1], dest=tmp_path)]
    cache = make_cache(site, observer)

    async def runner(job):
        return await cache.orchestrator.run_job(job)

    with pytest.raises(PermissionError):
        await run_bounded(jobs, runner, 1)
    assert site.navigated == []


@pytest.mark.asyncio()
async def test_token_auth_adds_header_to_fetch_session(site, observer, tmp_path):
    cache = make_cache(site, observer)
    config = {
        "dest": str(tmp_path),
        "urls": [{"url": URLS[1], "auth": {"type": "token", "token": "s3cret"}}],
        "session": {"extra_headers": {"X-Test": "1"}},
    }

    await cache.build_cache(config)

    headers = site.opened[0].extra_headers
    assert headers == {"X-Test": "1", "Authorization": "Bearer s3cret"}


@pytest.mark.asyncio()
async def test_run_bounded_never_starts_jobs_after_failure(tmp_path):
    started: list[str] = []

    async def runner(job: Job) -> Path:
        started.append(job.url)
        await asyncio.sleep(0.01 if job.url != "b" else 0)
        if job.url == "b":
            raise RuntimeError("b failed")
        return tmp_path / job.url

    jobs = [Job(url=u, dest=tmp_path) for u in ["a", "b", "c", "d", "e"]]
    with pytest.raises(RuntimeError, match="b failed"):
        await run_bounded(jobs, runner, 2)

    assert started == ["a", "b"]
    await asyncio.sleep(0.05)  # let the in-flight job drain


@pytest.mark.asyncio()
async def test_run_bounded_keeps_list_order(tmp_path):
    delays = {"a": 0.03, "b": 0.0, "c": 0.01}

    async def runner(job: Job) -> Path:
        await asyncio.sleep(delays[job.url])
        return tmp_path / job.url

    jobs = [Job(url=u, dest=tmp_path) for u in delays]
    paths = await run_bounded(jobs, runner, 3)

    assert [p.name for p in paths] == ["a", "b", "c"]


def test_token_auth_model_requires_source():
    with pytest.raises(ValueError):
        TokenAuth()
