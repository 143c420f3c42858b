"""Scribe CLI — run the API server and talk to it from a terminal.

Usage:
    scribe serve                                  # Run the API with uvicorn
    scribe register alice alice@example.com       # Create an account, print token
    scribe login alice                            # Log in, print token
    scribe me                                     # Who am I?
    scribe forgot-password alice@example.com      # Email a reset link
    scribe reset-password TOKEN                   # Choose a new password
    scribe posts list --limit 5                   # Your posts
    scribe posts create "Hello" --body "..."      # New post
    scribe posts edit 3 --title "Hello again"     # Change a post
    scribe posts delete 3                         # Remove a post

Protected commands read the bearer token from --token or SCRIBE_TOKEN.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("SCRIBE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Scribe API."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _require_token(token: Optional[str]) -> str:
    tok = token or os.environ.get("SCRIBE_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set SCRIBE_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _check(resp: httpx.Response) -> dict | list | None:
    """Return the JSON body, or print the error envelope and exit 1."""
    if resp.status_code >= 400:
        try:
            err = resp.json()
            message = f"{err.get('detail')} ({err.get('code')})"
        except ValueError:
            message = resp.text
        click.secho(f"Error {resp.status_code}: {message}", fg="red", err=True)
        sys.exit(1)
    if resp.status_code == 204 or not resp.content:
        return None
    return resp.json()


def _print_posts(posts: list[dict]) -> None:
    header = f"{'ID':<6}  {'CREATED':<20}  TITLE"
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for p in posts:
        created = str(p.get("created_at", ""))[:19]
        click.echo(f"{p['id']:<6}  {created:<20}  {p['title'][:60]}")


token_option = click.option("--token", "-t", help="Bearer token (or set SCRIBE_TOKEN)")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="scribe")
def main():
    """Scribe, a multi-user blogging backend."""


@main.command()
@click.option("--host", default=None, help="Bind address (default from SCRIBE_HOST)")
@click.option("--port", default=None, type=int, help="Port (default from SCRIBE_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from scribe.config import settings

    uvicorn.run(
        "scribe.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@main.command()
@click.argument("username")
@click.argument("email")
@click.password_option()
def register(username: str, email: str, password: str):
    """Create an account and print its bearer token."""
    _run(_auth_impl("/api/v1/users", {
        "username": username,
        "email": email,
        "password": password,
    }))


@main.command()
@click.argument("username")
@click.option("--password", prompt=True, hide_input=True)
def login(username: str, password: str):
    """Log in (USERNAME may also be an email) and print a bearer token."""
    field = "email" if "@" in username else "username"
    _run(_auth_impl("/api/v1/users/login", {field: username, "password": password}))


async def _auth_impl(path: str, body: dict):
    async with _client() as c:
        data = _check(await c.post(path, json=body))
    click.secho(f"Authenticated as {data['username']} (id {data['id']})", fg="green")
    click.echo(data["token"])
    click.echo("Export it with:  export SCRIBE_TOKEN=<token>", err=True)


@main.command()
@token_option
def me(token: Optional[str]):
    """Show the account the token belongs to."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            click.echo(_pretty_json(_check(await c.get("/api/v1/users/me"))))

    _run(_impl())


@main.command("forgot-password")
@click.argument("email")
def forgot_password(email: str):
    """Email a password reset link to EMAIL."""
    async def _impl():
        async with _client() as c:
            data = _check(await c.post("/api/v1/users/forgot-password", json={"email": email}))
        click.echo(data["message"])

    _run(_impl())


@main.command("reset-password")
@click.argument("reset_token")
@click.password_option("--new-password")
def reset_password(reset_token: str, new_password: str):
    """Set a new password using the token from a reset email."""
    async def _impl():
        async with _client() as c:
            data = _check(await c.post(
                f"/api/v1/users/forgot-password/{reset_token}",
                json={"new_password": new_password},
            ))
        click.secho(data["message"], fg="green")

    _run(_impl())


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


@main.group()
def posts():
    """Manage your posts."""


@posts.command("list")
@token_option
@click.option("--limit", "-n", type=int, default=None, help="Max posts to show")
@click.option("--json", "as_json", is_flag=True, help="Raw JSON output")
def list_posts(token: Optional[str], limit: Optional[int], as_json: bool):
    """List your posts, newest first."""
    tok = _require_token(token)

    async def _impl():
        params = {"limit": limit} if limit is not None else {}
        async with _client(tok) as c:
            data = _check(await c.get("/api/v1/posts", params=params))
        if as_json:
            click.echo(_pretty_json(data))
        elif not data:
            click.echo("No posts yet.")
        else:
            _print_posts(data)

    _run(_impl())


@posts.command("show")
@click.argument("post_id", type=int)
@token_option
def show_post(post_id: int, token: Optional[str]):
    """Show one post."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            post = _check(await c.get(f"/api/v1/posts/{post_id}"))
        click.secho(post["title"], bold=True)
        click.echo(f"#{post['id']}  {post['created_at']}")
        if post.get("body"):
            click.echo()
            click.echo(post["body"])

    _run(_impl())


@posts.command("create")
@click.argument("title")
@click.option("--body", "-b", default=None, help="Post body")
@token_option
def create_post(title: str, body: Optional[str], token: Optional[str]):
    """Create a post."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            post = _check(await c.post("/api/v1/posts", json={"title": title, "body": body}))
        click.secho(f"Post #{post['id']} created", fg="green")

    _run(_impl())


@posts.command("edit")
@click.argument("post_id", type=int)
@click.option("--title", default=None)
@click.option("--body", "-b", default=None)
@token_option
def edit_post(post_id: int, title: Optional[str], body: Optional[str], token: Optional[str]):
    """Change the title and/or body of a post."""
    tok = _require_token(token)
    changes = {k: v for k, v in (("title", title), ("body", body)) if v is not None}
    if not changes:
        click.secho("Nothing to change: pass --title and/or --body", fg="yellow", err=True)
        sys.exit(1)

    async def _impl():
        async with _client(tok) as c:
            post = _check(await c.patch(f"/api/v1/posts/{post_id}", json=changes))
        click.secho(f"Post #{post['id']} updated", fg="green")

    _run(_impl())


@posts.command("delete")
@click.argument("post_id", type=int)
@token_option
@click.confirmation_option(prompt="Delete this post?")
def delete_post(post_id: int, token: Optional[str]):
    """Delete a post."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            _check(await c.delete(f"/api/v1/posts/{post_id}"))
        click.secho(f"Post #{post_id} deleted", fg="green")

    _run(_impl())


if __name__ == "__main__":
    main()
