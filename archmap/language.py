from __future__ import annotations

import posixpath
from typing import Dict, List, Optional


EXTENSION_LANGUAGE: Dict[str, str] = {
	".ts": "typescript",
	".tsx": "typescript",
	".js": "javascript",
	".jsx": "javascript",
	".mjs": "javascript",
	".cjs": "javascript",
	".rs": "rust",
	".py": "python",
	".go": "go",
	".java": "java",
	".kt": "kotlin",
	".kts": "kotlin",
	".cs": "csharp",
	".rb": "ruby",
	".proto": "protobuf",
	".graphql": "graphql",
	".gql": "graphql",
}

# Languages whose blocks are delimited by braces rather than indentation.
BRACE_LANGUAGES = frozenset(
	{"typescript", "javascript", "rust", "go", "java", "kotlin", "csharp", "protobuf", "graphql"}
)


def classify(file_path: str) -> Optional[str]:
	"""Map a file path to a language tag, or None when it is not scanned."""
	_, ext = posixpath.splitext(file_path.replace("\\", "/"))
	return EXTENSION_LANGUAGE.get(ext.lower())


def supported_languages() -> List[str]:
	return sorted(set(EXTENSION_LANGUAGE.values()))
