import threading

import pytest

from security.admission import classify_bucket, requires_admin_cookie
from security.rate_limit import AdmissionLimiter
from tests.conftest import FakeClock

LIMITS = {"auth": 2, "search": 2, "read": 3, "write": 2}


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def limiter(clock):
    return AdmissionLimiter(LIMITS, window_seconds=60, block_seconds=300, sweep_interval_seconds=30, clock=clock)


@pytest.fixture()
def small_limits(app, clock):
    limiter = AdmissionLimiter(LIMITS, window_seconds=60, block_seconds=300, clock=clock)
    app.extensions["admission_limiter"] = limiter
    return limiter


# --- limiter ---------------------------------------------------------------

def test_requests_within_limit_are_allowed(limiter):
    assert limiter.hit("read", "1.1.1.1").allowed
    assert limiter.hit("read", "1.1.1.1").allowed
    assert limiter.hit("read", "1.1.1.1").allowed
    assert limiter.snapshot("read", "1.1.1.1").count == 3


def test_exceeding_limit_blocks_for_five_minutes(limiter, clock):
    for _ in range(2):
        assert limiter.hit("write", "1.1.1.1").allowed

    decision = limiter.hit("write", "1.1.1.1")
    assert not decision.allowed
    assert decision.retry_after == 300

    clock.advance(100)
    decision = limiter.hit("write", "1.1.1.1")
    assert not decision.allowed
    assert decision.retry_after == 200
    # blocked hits are not counted
    assert limiter.snapshot("write", "1.1.1.1").count == 3


def test_block_lifts_into_a_new_window(limiter, clock):
    for _ in range(3):
        limiter.hit("write", "1.1.1.1")

    clock.advance(300)
    assert limiter.hit("write", "1.1.1.1").allowed
    entry = limiter.snapshot("write", "1.1.1.1")
    assert entry.count == 1
    assert entry.window_started_at == clock.now


def test_window_still_open_at_fifty_nine_seconds(limiter, clock):
    limiter.hit("write", "1.1.1.1")
    limiter.hit("write", "1.1.1.1")

    clock.advance(59)
    assert not limiter.hit("write", "1.1.1.1").allowed


def test_window_rolls_over_after_sixty_seconds(limiter, clock):
    limiter.hit("write", "1.1.1.1")
    limiter.hit("write", "1.1.1.1")

    clock.advance(60)
    assert limiter.hit("write", "1.1.1.1").allowed
    assert limiter.snapshot("write", "1.1.1.1").count == 1


def test_buckets_and_ips_are_independent(limiter):
    for _ in range(3):
        limiter.hit("search", "1.1.1.1")
    assert not limiter.hit("search", "1.1.1.1").allowed

    assert limiter.hit("read", "1.1.1.1").allowed
    assert limiter.hit("write", "1.1.1.1").allowed
    assert limiter.hit("search", "2.2.2.2").allowed


def test_sweep_drops_idle_entries_but_keeps_blocked_ones(clock):
    limiter = AdmissionLimiter(LIMITS, window_seconds=60, block_seconds=300, clock=clock)
    limiter.hit("read", "idle")

    clock.advance(500)
    for _ in range(3):
        limiter.hit("write", "attacker")
    # long block so it is still active when the idle entry goes stale
    limiter._entries["write:attacker"].blocked_until = clock.now + 10_000

    clock.advance(601)
    assert limiter.sweep() == 1
    assert limiter.snapshot("read", "idle") is None
    assert limiter.snapshot("write", "attacker") is not None


def test_sweep_runs_at_most_every_thirty_seconds(limiter, clock):
    limiter.hit("read", "idle")
    clock.advance(601)

    limiter.hit("read", "other")
    assert limiter.snapshot("read", "idle") is None

    limiter.hit("read", "idle")
    clock.advance(601)
    limiter._last_sweep = clock.now - 10
    limiter.hit("read", "other")
    assert limiter.snapshot("read", "idle") is not None


# --- classification --------------------------------------------------------

@pytest.mark.parametrize(
    "path, method, bucket",
    [
        ("/api/auth", "POST", "auth"),
        ("/api/auth", "GET", "read"),
        ("/api/auth", "DELETE", "write"),
        ("/api/search", "GET", "search"),
        ("/api/search/posts", "GET", "search"),
        ("/api/posts", "GET", "read"),
        ("/api/posts", "HEAD", "read"),
        ("/api/posts", "OPTIONS", "read"),
        ("/api/posts", "POST", "write"),
        ("/api/posts/1/like", "PUT", "write"),
    ],
)
def test_classify_bucket(path, method, bucket):
    assert classify_bucket(path, method) == bucket


@pytest.mark.parametrize(
    "path, method, expected",
    [
        ("/api/announcements", "GET", False),
        ("/api/announcements", "POST", True),
        ("/api/announcements/abc", "PUT", True),
        ("/api/announcements/abc", "GET", True),
        ("/api/bidang", "GET", False),
        ("/api/bidang", "POST", True),
        ("/api/bidang/1", "DELETE", True),
        ("/api/cara-daftar", "GET", False),
        ("/api/cara-daftar/1", "PUT", True),
        ("/api/labels", "GET", False),
        ("/api/labels", "POST", False),
        ("/api/labels/1", "DELETE", True),
        ("/api/posts", "POST", False),
        ("/api/announcementsx", "POST", False),
    ],
)
def test_requires_admin_cookie(path, method, expected):
    assert requires_admin_cookie(path, method) is expected


# --- gate through the app --------------------------------------------------

def test_oversized_body_is_rejected_before_counting(client, app):
    resp = client.post(
        "/api/posts",
        data=b"",
        environ_overrides={"CONTENT_LENGTH": "300000"},
    )

    assert resp.status_code == 413
    assert app.extensions["admission_limiter"].snapshot("write", "127.0.0.1") is None


def test_long_url_is_rejected(client):
    resp = client.get("/api/" + "a" * 2100)
    assert resp.status_code == 414


def test_long_query_is_rejected(client):
    resp = client.get("/api/posts?q=" + "x" * 1300)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Query string too long."


def test_empty_user_agent_rejected_for_writes_only(client):
    no_ua = {"HTTP_USER_AGENT": ""}

    assert client.post("/api/auth", json={}, environ_overrides=no_ua).status_code == 403
    assert client.delete("/api/auth", environ_overrides=no_ua).status_code == 403
    assert client.get("/api/health", environ_overrides=no_ua).status_code == 200


@pytest.mark.parametrize("agent", ["curl/8.4.0", "python-requests/2.31.0", "Mozilla/5.0 (compatible; Nuclei)", "sqlmap/1.7"])
def test_tool_user_agents_are_rejected(client, agent):
    resp = client.get("/api/health", headers={"User-Agent": agent})
    assert resp.status_code == 403


def test_browser_user_agent_passes(client):
    resp = client.get("/api/health", headers={"User-Agent": "Mozilla/5.0 (X11; Linux x86_64) Firefox/131.0"})
    assert resp.status_code == 200


def test_non_api_paths_skip_the_gate(client):
    resp = client.get("/robots.txt?" + "x" * 1300)
    assert resp.status_code == 404


def test_rate_limited_response_has_retry_after(client, small_limits):
    for _ in range(2):
        assert client.get("/api/search?q=spp").status_code == 404

    resp = client.get("/api/search?q=spp")
    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "300"
    assert resp.get_json()["retryAfterSeconds"] == 300


def test_search_block_does_not_block_reads_or_writes(client, small_limits):
    for _ in range(3):
        client.get("/api/search?q=spp")

    assert client.get("/api/health").status_code == 200
    assert client.post("/api/posts", json={}).status_code == 404


def test_rate_limit_keys_on_forwarded_ip(client, small_limits):
    for _ in range(3):
        client.get("/api/search", headers={"X-Forwarded-For": "10.0.0.1, 172.16.0.1"})

    assert small_limits.snapshot("search", "10.0.0.1").count == 3
    assert client.get("/api/search", headers={"X-Forwarded-For": "10.0.0.2"}).status_code == 404


def test_admin_routes_need_a_cookie(client):
    resp = client.post("/api/bidang", json={"name": "x"})
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Admin access required."

    assert client.get("/api/announcements").status_code == 200
    assert client.post("/api/labels", json={}).status_code == 404

    client.set_cookie("lulus_spp_admin_token", "anything")
    # passes the pre-filter, no handler behind it
    assert client.post("/api/bidang", json={"name": "x"}).status_code == 404


def test_concurrent_hits_on_one_key_are_all_counted():
    limiter = AdmissionLimiter({"read": 100_000}, window_seconds=60, block_seconds=300)
    workers, hits_each = 8, 250
    barrier = threading.Barrier(workers)

    def hammer():
        barrier.wait()
        for _ in range(hits_each):
            limiter.hit("read", "1.1.1.1")

    threads = [threading.Thread(target=hammer) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert limiter.snapshot("read", "1.1.1.1").count == workers * hits_each
