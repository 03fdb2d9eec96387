"""Parser for unified diffs using the unidiff library."""

from dataclasses import dataclass, field

from unidiff import PatchSet


@dataclass
class FileDiff:
    """Parsed diff for a single file."""
    filename: str
    status: str                           # added, deleted, modified, renamed
    additions: int
    deletions: int
    added_lines: list[tuple[int, str]] = field(default_factory=list)    # (line_num, content)
    commentable_lines: set[int] = field(default_factory=set)            # new-file lines present in the diff

    @property
    def changes(self) -> int:
        return self.additions + self.deletions


def parse_diff(diff_text: str) -> list[FileDiff]:
    """
    Parse a unified diff into FileDiff objects, one per file.

    Commentable lines are the added and context lines of the new file:
    the only lines a review comment can be anchored to.
    """
    if not diff_text.strip():
        return []

    files = []
    for patched_file in PatchSet(diff_text):
        if patched_file.is_added_file:
            status = "added"
        elif patched_file.is_removed_file:
            status = "deleted"
        elif patched_file.is_rename:
            status = "renamed"
        else:
            status = "modified"

        added_lines = []
        commentable = set()
        for hunk in patched_file:
            for line in hunk:
                if line.target_line_no is None:
                    continue
                if line.is_added:
                    added_lines.append((line.target_line_no, line.value.rstrip('\n')))
                if line.is_added or line.is_context:
                    commentable.add(line.target_line_no)

        files.append(FileDiff(
            filename=patched_file.path,
            status=status,
            additions=patched_file.added,
            deletions=patched_file.removed,
            added_lines=added_lines,
            commentable_lines=commentable,
        ))

    return files


def find_nearest_line(
    valid_lines: set[int],
    target_line: int,
    max_distance: int = 5,
) -> int | None:
    """
    Nearest commentable line to *target_line*, searching outward.

    Agents sometimes cite a line just outside the diff (surrounding
    context). Returns None if nothing is within *max_distance*.
    """
    if target_line in valid_lines:
        return target_line

    for distance in range(1, max_distance + 1):
        if target_line + distance in valid_lines:
            return target_line + distance
        if target_line - distance in valid_lines:
            return target_line - distance

    return None


# File extensions to skip during review
SKIP_EXTENSIONS = {
    '.md', '.txt', '.rst', '.adoc',
    '.lock',
    '.png', '.jpg', '.jpeg', '.gif', '.svg', '.ico', '.webp',
    '.woff', '.woff2', '.ttf', '.eot',
    '.csv', '.json', '.xml', '.yaml', '.yml', '.toml',
    '.min.js', '.min.css', '.map',
    '.exe', '.dll', '.so', '.dylib', '.pyc',
    '.zip', '.tar', '.gz', '.pdf',
}

SKIP_FILENAMES = {
    'package-lock.json', 'yarn.lock', 'pnpm-lock.yaml',
    'Pipfile.lock', 'poetry.lock', 'uv.lock', 'Cargo.lock',
    '.gitignore', '.gitattributes', 'LICENSE',
}

SKIP_DIRECTORIES = {'node_modules/', 'vendor/', 'dist/', 'build/', '__pycache__/', '.venv/'}


def should_review_file(filename: str) -> bool:
    """Skip generated, vendored, binary and documentation files."""
    for skip_dir in SKIP_DIRECTORIES:
        if filename.startswith(skip_dir) or f'/{skip_dir}' in filename:
            return False

    if filename.split('/')[-1] in SKIP_FILENAMES:
        return False

    lowered = filename.lower()
    return not any(lowered.endswith(ext) for ext in SKIP_EXTENSIONS)


def filter_files(files: list[FileDiff]) -> list[FileDiff]:
    """Files worth sending to reviewers: reviewable type, not deleted, something added."""
    return [
        f for f in files
        if should_review_file(f.filename) and f.status != 'deleted' and f.added_lines
    ]


def extract_added_code(file: FileDiff, include_line_numbers: bool = True) -> str:
    """Added lines of *file* as one string, optionally prefixed '  42| '."""
    if include_line_numbers:
        return "\n".join(f"{num:4}| {content}" for num, content in file.added_lines)
    return "\n".join(content for _, content in file.added_lines)
