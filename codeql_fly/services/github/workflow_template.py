"""Scanner workflow definition pushed to scanned repositories."""

from typing import Any, Dict, List, Optional

import yaml

from codeql_fly.config import settings


def build_workflow(
    tag: str, languages: Optional[List[str]] = None, name: Optional[str] = None
) -> Dict[str, Any]:
    return {
        "name": name or settings.SCANNER_WORKFLOW_NAME,
        "on": {
            "workflow_dispatch": {
                "inputs": {
                    "branch": {
                        "description": "Branch to analyze",
                        "required": False,
                        "default": settings.DEFAULT_SOURCE_BRANCH,
                        "type": "string",
                    }
                }
            }
        },
        "env": {"RELEASE_TAG": tag},
        "jobs": {
            "analyze": {
                "name": "Analyze (${{ matrix.language }})",
                "runs-on": "ubuntu-latest",
                "permissions": {
                    "security-events": "write",
                    "packages": "read",
                    "actions": "read",
                    "contents": "read",
                },
                "strategy": {
                    "fail-fast": False,
                    "matrix": {
                        "language": list(languages or settings.SCANNER_LANGUAGES),
                        "build-mode": ["none"],
                    },
                },
                "steps": [
                    {"name": "Checkout repository", "uses": "actions/checkout@v4"},
                    {
                        "name": "Initialize CodeQL",
                        "uses": "github/codeql-action/init@v3",
                        "with": {
                            "languages": "${{ matrix.language }}",
                            "build-mode": "${{ matrix.build-mode }}",
                        },
                    },
                    {
                        "name": "Perform CodeQL Analysis",
                        "uses": "github/codeql-action/analyze@v3",
                        "with": {"category": "/language:${{ matrix.language }}"},
                    },
                ],
            }
        },
    }


def render_workflow(tag: str, languages: Optional[List[str]] = None) -> str:
    return yaml.safe_dump(
        build_workflow(tag, languages), sort_keys=False, default_flow_style=False
    )
