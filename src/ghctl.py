#!/usr/bin/env python3
"""
CLI tool for the GitHub provider
Provides a kubectl-like view of reconciliation status through the status API
"""

import json

import click
import requests
import yaml
from tabulate import tabulate

from validation import CRDS, crd_manifest

API_URL = "http://localhost:8080"


class ProviderGitHubCLI:
    """CLI client for the provider status API"""

    def __init__(self, api_url: str = API_URL):
        self.api_url = api_url.rstrip("/")

    def _make_request(self, method: str, endpoint: str, **kwargs):
        """Make HTTP request to the API"""
        url = f"{self.api_url}{endpoint}"
        try:
            response = requests.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            click.echo(f"Error: {e}", err=True)
            if hasattr(e, "response") and e.response is not None:
                try:
                    error_detail = e.response.json()
                    click.echo(f"Detail: {error_detail}", err=True)
                except (ValueError, json.JSONDecodeError):
                    click.echo(f"Response: {e.response.text}", err=True)
            return None


def _mark(success: bool) -> str:
    return "✓" if success else "✗"


@click.group()
@click.option(
    "--api-url",
    envvar="GHCTL_API_URL",
    default=API_URL,
    show_default=True,
    help="Base URL of the provider status API",
)
@click.pass_context
def cli(ctx, api_url):
    """GitHub provider CLI - kubectl-like interface for Teams and Memberships"""
    ctx.obj = ProviderGitHubCLI(api_url)


@cli.command()
@click.pass_obj
def status(client):
    """Show controller readiness and registered reconcilers"""
    health = client._make_request("GET", "/healthz")
    if health is None:
        return
    click.echo(f"Service: {health.get('service', 'N/A')}")

    reconcilers = client._make_request("GET", "/api/v1/reconcilers")
    if reconcilers:
        rows = [[r["name"], ", ".join(r["resource_types"])] for r in reconcilers]
        click.echo(tabulate(rows, headers=["RECONCILER", "KINDS"], tablefmt="plain"))

    resources = client._make_request("GET", "/api/v1/resources")
    if resources is not None:
        failing = [r for r in resources if not r["success"]]
        click.echo(f"\nResources: {len(resources)} ({len(failing)} failing)")


@cli.command()
@click.argument("kind")
@click.option(
    "--output", "-o", type=click.Choice(["table", "json", "wide"]), default="table"
)
@click.pass_obj
def get(client, kind, output):
    """List resources of a kind with their last reconciliation"""
    result = client._make_request("GET", "/api/v1/resources", params={"kind": kind})
    if result is None:
        return

    if output == "json":
        click.echo(json.dumps(result, indent=2))
        return

    if not result:
        click.echo(f"No {kind} resources found")
        return

    headers = ["NAME", "SYNCED", "TRIGGER", "LAST RECONCILE"]
    if output == "wide":
        headers += ["DURATION", "MESSAGE"]
    rows = []
    for entry in result:
        row = [
            entry["name"],
            _mark(entry["success"]),
            entry.get("trigger_reason") or "",
            entry["reconcile_time"],
        ]
        if output == "wide":
            duration = entry.get("duration_seconds")
            row += [
                f"{duration:.2f}s" if duration is not None else "",
                entry.get("message", ""),
            ]
        rows.append(row)

    click.echo(tabulate(rows, headers=headers, tablefmt="plain"))


@cli.command()
@click.argument("kind")
@click.argument("name")
@click.option("--output", "-o", type=click.Choice(["json", "yaml"]), default="yaml")
@click.pass_obj
def describe(client, kind, name, output):
    """Describe a resource and its last reconciliation"""
    result = client._make_request("GET", f"/api/v1/resources/{kind}/{name}")

    if result:
        if output == "yaml":
            click.echo(yaml.safe_dump(result, default_flow_style=False))
        else:
            click.echo(json.dumps(result, indent=2))


@cli.command()
@click.argument("kind")
@click.argument("name")
@click.pass_obj
def reconcile(client, kind, name):
    """Manually trigger reconciliation for a resource"""
    result = client._make_request("POST", f"/api/v1/resources/{kind}/{name}/reconcile")

    if result:
        click.echo(f"Reconciliation of {kind}/{name} triggered successfully")


@cli.command()
@click.argument("kinds", nargs=-1, type=click.Choice(sorted(CRDS)))
def crds(kinds):
    """Print the CustomResourceDefinitions as YAML"""
    manifests = [crd_manifest(kind) for kind in (kinds or sorted(CRDS))]
    click.echo(yaml.safe_dump_all(manifests, default_flow_style=False, sort_keys=False))


if __name__ == "__main__":
    cli()
