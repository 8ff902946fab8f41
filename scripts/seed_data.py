#!/usr/bin/env python3
"""
Seed script — creates a realistic dataset for trying out TechDeep.

Creates:
  • 8 users (signed up through the auth provider)
  • 2-3 posts per user across a handful of categories
  • upvotes, bookmarks, comments and follows between them

Run after the API, Redis and the auth provider are up:
  python scripts/seed_data.py --api-url http://localhost:8000/make-server-a65856ea

Every account uses the password given by --password.
"""
import argparse
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Optional


BASE_USERS = [
    ("alice", "Alice Chen", "Singapore"),
    ("bob", "Bob Martinez", "Mexico"),
    ("carol", "Carol Singh", "India"),
    ("dave", "Dave Kim", "South Korea"),
    ("eve", "Eve Johnson", "United States"),
    ("frank", "Frank Williams", "United Kingdom"),
    ("grace", "Grace Li", "Canada"),
    ("henry", "Henry Brown", "Australia"),
]

SAMPLE_POSTS = [
    ("Virtual DOM", "How React decides what to re-render", "React", ["react", "rendering"]),
    ("B-Trees Explained", "Why databases love wide, shallow trees", "Databases", ["storage", "indexes"]),
    ("The Event Loop", "Tasks, microtasks and why setTimeout(0) is not zero", "JavaScript", ["async", "runtime"]),
    ("Consistent Hashing", "Moving as few keys as possible when nodes change", "Distributed Systems", ["sharding"]),
    ("TCP Slow Start", "Congestion windows from first principles", "Networking", ["tcp", "congestion"]),
    ("Garbage Collection", "Mark, sweep and the generational hypothesis", "Runtimes", ["gc", "memory"]),
    ("CSS Specificity", "Why your style is not applied", "Frontend", ["css"]),
    ("Write-Ahead Logs", "Durability without writing everything twice", "Databases", ["wal", "durability"]),
    ("Raft in Plain Words", "Leader election and log replication", "Distributed Systems", ["consensus"]),
    ("HTTP Caching", "Cache-Control, ETags and revalidation", "Networking", ["http", "cdn"]),
]

SAMPLE_COMMENTS = [
    "This finally made it click for me, thanks!",
    "Great diagrams. Would love a follow-up on edge cases.",
    "Small nit: the second example skips a step.",
    "Bookmarked for my next interview prep.",
]


@dataclass
class ApiClient:
    base_url: str
    token: Optional[str] = None

    def _request(self, method: str, path: str, data: Optional[dict] = None) -> dict:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on {method} {path}: {e.read().decode()}")
            return {}

    def post(self, path: str, data: Optional[dict] = None) -> dict:
        return self._request("POST", path, data if data is not None else {})

    def get(self, path: str) -> dict:
        return self._request("GET", path)

    def as_user(self, token: str) -> "ApiClient":
        return ApiClient(self.base_url, token)


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for i in range(retries):
        try:
            result = client.get("/health")
            if result.get("status") == "ok":
                print("  API is ready!\n")
                return
        except urllib.error.URLError:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def main(api_url: str, email_domain: str, password: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Sign up + sign in ─────────────────────────────────────────────────
    print("Creating users...")
    sessions: dict[str, ApiClient] = {}
    for handle, name, country in BASE_USERS:
        email = f"{handle}@{email_domain}"
        client.post("/signup", {"email": email, "password": password, "name": name, "country": country})
        result = client.post("/signin", {"email": email, "password": password})
        token = result.get("accessToken")
        user = result.get("user") or {}
        if token and user.get("id"):
            sessions[user["id"]] = client.as_user(token)
            print(f"  ✓ {name} ({user['id']})")
        else:
            print(f"  ✗ Failed to sign in {email}")

    if not sessions:
        print("No users created — aborting")
        return
    user_ids = list(sessions)

    # ── Posts ─────────────────────────────────────────────────────────────
    print("\nCreating posts...")
    post_ids: list[str] = []
    pool = SAMPLE_POSTS[:]
    random.shuffle(pool)
    idx = 0
    for user_id, session in sessions.items():
        for _ in range(random.randint(2, 3)):
            title, description, category, tags = pool[idx % len(pool)]
            idx += 1
            result = session.post(
                "/posts",
                {
                    "title": title,
                    "description": description,
                    "content": f"{description}.\n\nA longer explanation would go here.",
                    "category": category,
                    "tags": tags,
                },
            )
            pid = (result.get("post") or {}).get("id")
            if pid:
                post_ids.append(pid)
    print(f"  ✓ {len(post_ids)} posts created")

    # ── Engagement ────────────────────────────────────────────────────────
    print("\nAdding upvotes, bookmarks and comments...")
    upvotes = bookmarks = comments = 0
    for post_id in post_ids:
        for user_id in random.sample(user_ids, k=random.randint(0, len(user_ids))):
            sessions[user_id].post(f"/posts/{post_id}/upvote")
            upvotes += 1
        for user_id in random.sample(user_ids, k=random.randint(0, 2)):
            sessions[user_id].post(f"/posts/{post_id}/bookmark")
            bookmarks += 1
        for user_id in random.sample(user_ids, k=random.randint(0, 2)):
            sessions[user_id].post(
                f"/posts/{post_id}/comments", {"content": random.choice(SAMPLE_COMMENTS)}
            )
            comments += 1
    print(f"  ✓ {upvotes} upvotes, {bookmarks} bookmarks, {comments} comments")

    # ── Follow graph ──────────────────────────────────────────────────────
    print("\nCreating follow relationships...")
    for follower_id in user_ids:
        others = [u for u in user_ids if u != follower_id]
        for followee_id in random.sample(others, k=min(3, len(others))):
            sessions[follower_id].post(f"/users/{followee_id}/follow")
    print("  ✓ Follow graph created")

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    print("# Most upvoted posts:")
    print(f"  curl -s '{api_url}/posts?sort=upvotes' | python3 -m json.tool\n")
    print("# Contributor leaderboard:")
    print(f"  curl -s '{api_url}/contributors' | python3 -m json.tool\n")
    print("# Search:")
    print(f"  curl -s '{api_url}/search?q=virtual' | python3 -m json.tool\n")
    print(f"# Sign in as {BASE_USERS[0][1]}: {BASE_USERS[0][0]}@{email_domain} / {password}")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed TechDeep with demo content")
    parser.add_argument(
        "--api-url",
        default="http://localhost:8000/make-server-a65856ea",
        help="API base URL including the route prefix",
    )
    parser.add_argument("--email-domain", default="techdeep.test")
    parser.add_argument("--password", default="techdeep-demo")
    args = parser.parse_args()
    main(args.api_url, args.email_domain, args.password)
