"""
Repository templates.

Each template is plain data: the directories to create, and the required
files under ``.humanet/`` with a generator for their seed content. Whether a
path is required is a set-membership check against the manifest.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Tuple

from humanet_repo.utils.time_utils import iso_now

METADATA_DIR = ".humanet"
META_FILE = f"{METADATA_DIR}/meta.json"
DEFAULT_TEMPLATE = "basic"


@dataclass(frozen=True)
class TemplateManifest:
    name: str
    title: str
    description: str
    directories: Tuple[str, ...]
    seed_files: Dict[str, Callable[[], str]] = field(default_factory=dict)

    @property
    def required_paths(self) -> FrozenSet[str]:
        """Logical paths that can be updated but never deleted."""
        return frozenset([META_FILE] + list(self.seed_files))

    @property
    def file_count(self) -> int:
        return len(self.required_paths)

    def is_required(self, logical_path: str) -> bool:
        return logical_path in self.required_paths


def idea_seed() -> str:
    return """# Idea Title

## Overview
Brief description of your idea in 1-2 sentences.

## Description
Detailed explanation of your idea, what it does, and why it matters.

## Target Audience
Who would benefit from this idea?

## Key Features
- Feature 1
- Feature 2
- Feature 3

## Current Status
What stage is this idea in? (Concept, Planning, Development, etc.)

## Next Steps
What needs to happen to move this forward?
"""


def scope_seed() -> str:
    return """# Project Scope

## What's Included
Define what this project will include and deliver.

### Core Features
- List the essential features
- That must be included

### Secondary Features
- Optional features
- That would be nice to have

## What's Excluded
Clearly define what is NOT part of this project.

### Out of Scope
- Features that won't be included
- To keep the project focused

## Success Criteria
How will you know when this project is successful?

## Timeline
Rough estimate of project duration and major milestones.
"""


def problem_seed() -> str:
    return """# Problem Statement

## The Problem
Clearly describe the problem this idea solves.

### Who Has This Problem?
- Target user group 1
- Target user group 2

### Why Is This Important?
Explain the impact and significance of solving this problem.

## Current Solutions
What existing solutions are available?

### Their Limitations
- Limitation 1
- Limitation 2

## Our Approach
How does your idea solve this problem differently or better?

## Expected Impact
What change will this solution create?
"""


def search_seed() -> str:
    return f"""# Search Keywords

*This file is automatically updated based on user interactions and content analysis.*

## Primary Keywords
- keyword1
- keyword2
- keyword3

## Secondary Keywords
- related term 1
- related term 2

## Tags
- tag1
- tag2

## Related Concepts
- concept1
- concept2

---
*Last updated: {iso_now()}*
"""


def methodology_seed() -> str:
    return """# Research Methodology

## Research Approach
Describe your overall research strategy.

## Data Collection
How will you gather information?

### Primary Sources
- Source type 1
- Source type 2

### Secondary Sources
- Literature review
- Existing datasets

## Analysis Methods
How will you analyze the collected data?

## Timeline
Research phases and milestones.
"""


def references_seed() -> str:
    return """# References

## Academic Papers
1. Author, A. (Year). Title of paper. Journal Name.

## Books
1. Author, A. (Year). Book Title. Publisher.

## Online Resources
1. Website Name. (Date). Article Title. URL

## Related Projects
1. Project Name - Brief description

## Tools and Datasets
1. Tool/Dataset Name - Description and source
"""


def architecture_seed() -> str:
    return """# Technical Architecture

## System Overview
High-level description of the system architecture.

## Components
### Frontend
- Technology stack
- Key components

### Backend
- Technology stack
- API design

### Database
- Database choice
- Schema design

### Infrastructure
- Hosting requirements
- Scalability considerations

## Data Flow
Describe how data moves through the system.

## Security Considerations
Key security requirements and implementations.
"""


def requirements_seed() -> str:
    return """# Technical Requirements

## Functional Requirements
What the system must do.

### Core Features
1. Requirement 1
2. Requirement 2

### User Stories
- As a [user type], I want [goal] so that [benefit]

## Non-Functional Requirements
How the system should perform.

### Performance
- Response time requirements
- Throughput expectations

### Scalability
- Expected user load
- Growth projections

### Security
- Authentication requirements
- Data protection needs

## Technical Constraints
- Technology limitations
- Resource constraints
- Compatibility requirements
"""


_BASIC_FILES = {
    f"{METADATA_DIR}/idea.md": idea_seed,
    f"{METADATA_DIR}/scope.md": scope_seed,
    f"{METADATA_DIR}/problem.md": problem_seed,
    f"{METADATA_DIR}/search.md": search_seed,
}

_BASIC_DIRS = (METADATA_DIR, "docs", "media")

TEMPLATES: Dict[str, TemplateManifest] = {
    "basic": TemplateManifest(
        name="basic",
        title="Basic Idea",
        description="Simple idea repository structure",
        directories=_BASIC_DIRS,
        seed_files=dict(_BASIC_FILES),
    ),
    "research": TemplateManifest(
        name="research",
        title="Research Project",
        description="Academic or research-focused structure",
        directories=_BASIC_DIRS + ("data", "analysis"),
        seed_files={
            **_BASIC_FILES,
            f"{METADATA_DIR}/methodology.md": methodology_seed,
            f"{METADATA_DIR}/references.md": references_seed,
        },
    ),
    "technical": TemplateManifest(
        name="technical",
        title="Technical Project",
        description="Software or technical implementation",
        directories=_BASIC_DIRS + ("data",),
        seed_files={
            **_BASIC_FILES,
            f"{METADATA_DIR}/architecture.md": architecture_seed,
            f"{METADATA_DIR}/requirements.md": requirements_seed,
        },
    ),
}


def get_template(name: str) -> TemplateManifest:
    """Look up a template by name. Raises ValueError for unknown names."""
    try:
        return TEMPLATES[name]
    except KeyError:
        raise ValueError(f"Unknown repository template: {name!r}") from None
