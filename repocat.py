#!/usr/bin/env python3
"""
repocat - Concatenate a project into a single Markdown report for LLMs

Walks a project directory, drops ignored and binary files, and writes a
rendered directory tree followed by every remaining text file in fenced
code blocks.

Architecture:
    CLI Args → Configuration → File Discovery → Path Filter →
    Tree Rendering + Content Reading → Report → Output
"""

from __future__ import annotations

import argparse
import logging
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

import gitignore_parser
import pyperclip

from pasteboard import copy_to_pasteboard

# =============================================================================
# VERSION MANAGEMENT
# =============================================================================

__version__ = "1.0.0"


def get_version() -> str:
    """Get version from package metadata or fallback to hardcoded."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("repocat")
    except PackageNotFoundError:
        return __version__


# =============================================================================
# CONSTANTS
# =============================================================================

class Defaults:
    """Default configuration values."""
    OUTPUT_NAME = "repocat.md"
    IGNORE_FILE = ".gitignore"
    VCS_DIR = ".git"
    SNIFF_BYTES = 1024
    INDENT = "  "


# Substrings that exclude a path wherever they occur in it
DEFAULT_DENYLIST: Tuple[str, ...] = (
    # Tool configs
    ".config.json", ".config.ts", ".config.js", "tsconfig.",
    ".gitignore",
    # Manifests and lockfiles
    "package.json", "package-lock.json",
    "yarn.lock", "bun.lockb", "bun.lock",
    # Project meta docs
    "LICENSE", "CONTRIBUTING", "CODE_OF_CONDUCT",
    # Vector images
    ".svg",
    # Our own output
    Defaults.OUTPUT_NAME,
    # Dependencies
    "node_modules",
)

BINARY_EXTENSIONS: FrozenSet[str] = frozenset({
    # Documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    # Archives
    ".zip", ".rar", ".7z", ".tar", ".gz", ".bz2",
    # Executables and libraries
    ".exe", ".dll", ".so", ".dylib",
    # Images
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tiff",
    # Audio / video
    ".mp3", ".mp4", ".avi", ".mov", ".wmv",
    # Databases
    ".sqlite", ".db",
})

ICON_DIR = "📁"
ICON_FILE = "📄"
FENCE = "```"
ESCAPED_FENCE = "\\`\\`\\`\n"

STRUCTURE_HEADING = "# file structure"
CONTENTS_HEADING = "# file contents"

# Directory path ("" for root) -> sorted basenames directly inside it
FileTree = Dict[str, List[str]]


# =============================================================================
# ERRORS
# =============================================================================

class RepocatError(Exception):
    """A failure that aborts the whole run."""


class OutputOutsideRootError(RepocatError):
    """The requested output file is not under the project root."""

    def __init__(self, path: Path, root: Path):
        super().__init__(f"Output {path} must be inside {root}")
        self.path = path
        self.root = root


class MissingIgnoreFileError(RepocatError):
    """The project root has no .gitignore to load."""

    def __init__(self, path: Path):
        super().__init__(f"No {Defaults.IGNORE_FILE} found at {path}")
        self.path = path


# =============================================================================
# DATA MODELS
# =============================================================================

@dataclass(frozen=True)
class RepocatConfig:
    """Immutable run configuration."""
    root_dir: Path
    output_name: str = Defaults.OUTPUT_NAME
    denylist: Tuple[str, ...] = DEFAULT_DENYLIST
    binary_extensions: FrozenSet[str] = BINARY_EXTENSIONS
    copy_to_clipboard: bool = False

    @property
    def output_path(self) -> Path:
        return self.root_dir / self.output_name


@dataclass
class Report:
    """The assembled document, plus bookkeeping for the console summary."""
    tree: str
    blocks: List[str] = field(default_factory=list)
    included: List[str] = field(default_factory=list)
    binary: List[str] = field(default_factory=list)
    unreadable: List[str] = field(default_factory=list)

    def render(self) -> str:
        """Join the structure and contents sections into one document."""
        return (
            f"{STRUCTURE_HEADING}\n\n"
            f"{self.tree}\n"
            f"{CONTENTS_HEADING}\n\n"
            + "".join(self.blocks)
        )


# =============================================================================
# BINARY CLASSIFIER
# =============================================================================

def is_binary(
    path: Path,
    extensions: FrozenSet[str] = BINARY_EXTENSIONS,
    sniff_bytes: int = Defaults.SNIFF_BYTES,
) -> bool:
    """Guess whether a file is binary.

    Known binary extensions short-circuit without touching the file.
    Anything else is binary if a NUL byte shows up in the first
    ``sniff_bytes`` bytes. Unreadable files count as binary.
    """
    if path.suffix.lower() in extensions:
        return True

    try:
        with open(path, "rb") as f:
            return b"\x00" in f.read(sniff_bytes)
    except OSError as e:
        logging.error(f"Error reading file {path}: {e}")
        return True


# =============================================================================
# PATH FILTER RULES (Strategy Pattern)
# =============================================================================

class FilterRule(ABC):
    """Abstract base for path filter rules."""

    @abstractmethod
    def check(self, rel_path: str) -> Tuple[bool, str]:
        """Check if path passes this rule. Returns (passes, reason)."""
        pass


class VcsDirRule(FilterRule):
    """Drop anything under the version-control metadata directory."""

    def __init__(self, prefix: str = Defaults.VCS_DIR):
        self.prefix = prefix

    def check(self, rel_path: str) -> Tuple[bool, str]:
        # Plain string prefix, so .gitignore and .github/ go too
        if rel_path.startswith(self.prefix):
            return False, f"Starts with {self.prefix}"
        return True, ""


class DenylistRule(FilterRule):
    """Drop paths containing any denylisted substring."""

    def __init__(self, denylist: Sequence[str]):
        self.denylist = tuple(denylist)

    def check(self, rel_path: str) -> Tuple[bool, str]:
        for entry in self.denylist:
            if entry in rel_path:
                return False, f"Denylisted: {entry}"
        return True, ""


class GitignoreRule(FilterRule):
    """Apply .gitignore patterns."""

    def __init__(self, root: Path, matcher: Callable[[str], bool]):
        self.root = root
        self.matcher = matcher

    def check(self, rel_path: str) -> Tuple[bool, str]:
        # The matcher resolves relative paths against the cwd, not the root
        if self.matcher(str(self.root / rel_path)):
            return False, "Matched .gitignore"
        return True, ""


# =============================================================================
# PATH FILTER COMPOSITE
# =============================================================================

class PathFilter:
    """Composite filter applying rules in order."""

    def __init__(self, rules: Sequence[FilterRule]):
        self.rules: List[FilterRule] = list(rules)

    @classmethod
    def from_config(
        cls,
        config: RepocatConfig,
        gitignore_matcher: Callable[[str], bool],
    ) -> PathFilter:
        """Build the standard rule chain."""
        return cls([
            VcsDirRule(),
            DenylistRule(config.denylist),
            GitignoreRule(config.root_dir, gitignore_matcher),
        ])

    def should_include(self, rel_path: str) -> Tuple[bool, str]:
        """Check if a path should be included."""
        for rule in self.rules:
            passes, reason = rule.check(rel_path)
            if not passes:
                return False, reason
        return True, "Passed all filters"

    def filter(self, paths: Iterable[str]) -> List[str]:
        """Keep eligible paths, preserving their order."""
        eligible = []
        for rel_path in paths:
            ok, reason = self.should_include(rel_path)
            if ok:
                eligible.append(rel_path)
            else:
                logging.debug(f"Excluded {rel_path}: {reason}")
        return eligible


# =============================================================================
# DISCOVERY
# =============================================================================

def load_gitignore(root: Path) -> Callable[[str], bool]:
    """Load the root .gitignore matcher.

    Raises MissingIgnoreFileError when the file does not exist.
    """
    gitignore = root / Defaults.IGNORE_FILE
    if not gitignore.is_file():
        raise MissingIgnoreFileError(gitignore)
    return gitignore_parser.parse_gitignore(str(gitignore), base_dir=str(root))


def discover_files(root: Path) -> List[str]:
    """List every file under root, dotfiles included, as posix relative paths."""
    return [
        item.relative_to(root).as_posix()
        for item in root.rglob("*")
        if item.is_file()
    ]


# =============================================================================
# TREE RENDERER
# =============================================================================

def build_file_tree(paths: Iterable[str]) -> FileTree:
    """Bucket paths by parent directory."""
    tree: FileTree = {}
    for rel_path in paths:
        directory, _, name = rel_path.rpartition("/")
        tree.setdefault(directory, []).append(name)
    for names in tree.values():
        names.sort()
    return tree


class TreeRenderer:
    """Renders a FileTree as an indented icon listing."""

    def __init__(self, tree: FileTree, indent: str = Defaults.INDENT):
        self.tree = tree
        self.indent = indent
        self.children = self._build_adjacency(tree)

    @staticmethod
    def _build_adjacency(tree: FileTree) -> Dict[str, Set[str]]:
        """Map each directory to its direct child directories."""
        children: Dict[str, Set[str]] = {}
        for directory in tree:
            while directory:
                parent = directory.rpartition("/")[0]
                siblings = children.setdefault(parent, set())
                if directory in siblings:
                    break
                siblings.add(directory)
                directory = parent
        return children

    def render(self) -> str:
        lines: List[str] = []
        self._render_dir("", 0, lines)
        return "".join(lines)

    def _render_dir(self, directory: str, depth: int, lines: List[str]) -> None:
        pad = self.indent * depth
        for name in sorted(self.tree.get(directory, ())):
            lines.append(f"{pad}{ICON_FILE} {name}\n")
        for child in sorted(self.children.get(directory, ())):
            lines.append(f"{pad}{ICON_DIR} {child.rpartition('/')[2]}\n")
            self._render_dir(child, depth + 1, lines)


def render_file_tree(paths: Iterable[str]) -> str:
    return TreeRenderer(build_file_tree(paths)).render()


# =============================================================================
# REPORT ASSEMBLER
# =============================================================================

def sanitize_content(content: str) -> str:
    """Escape fences so file content can't close the surrounding block."""
    return content.replace(FENCE, ESCAPED_FENCE)


def fence_language(rel_path: str) -> str:
    """Fence tag for a file: whatever follows the last dot in its name."""
    name = rel_path.rpartition("/")[2]
    if "." not in name:
        return ""
    return name.rpartition(".")[2]


def format_block(rel_path: str, content: str) -> str:
    return (
        f"file: {rel_path}\n"
        f"{FENCE}{fence_language(rel_path)}\n"
        f"{sanitize_content(content)}\n"
        f"{FENCE}\n\n"
    )


class ReportAssembler:
    """Discovers, filters, reads and concatenates a project."""

    def __init__(self, config: RepocatConfig, path_filter: PathFilter):
        self.config = config
        self.filter = path_filter

    @classmethod
    def from_config(cls, config: RepocatConfig) -> ReportAssembler:
        """Load the root .gitignore and wire up the standard filter."""
        matcher = load_gitignore(config.root_dir)
        return cls(config, PathFilter.from_config(config, matcher))

    def collect(self) -> List[str]:
        """Eligible paths in discovery order."""
        return self.filter.filter(discover_files(self.config.root_dir))

    def assemble(self, paths: Sequence[str]) -> Report:
        report = Report(tree=render_file_tree(paths))
        root = self.config.root_dir

        for rel_path in paths:
            path = root / rel_path
            if is_binary(path, self.config.binary_extensions):
                report.binary.append(rel_path)
                continue

            try:
                # Bytes first, so CR and CRLF line endings survive untouched
                content = path.read_bytes().decode("utf-8", errors="replace")
            except OSError as e:
                logging.error(f"Error reading file {rel_path}: {e}")
                report.unreadable.append(rel_path)
                continue

            report.blocks.append(format_block(rel_path, content))
            report.included.append(rel_path)

        return report

    def run(self) -> Report:
        """Assemble the report and write it to the output file."""
        report = self.assemble(self.collect())
        OutputWriter.write_file(report.render(), self.config.output_path)
        return report


# =============================================================================
# OUTPUT WRITER
# =============================================================================

class OutputWriter:
    """Handles output to the report file and the clipboard."""

    @staticmethod
    def write_file(content: str, path: Path) -> None:
        """Write the whole document in one go, replacing any previous run."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    @staticmethod
    def copy(content: str) -> bool:
        """Copy to clipboard."""
        try:
            copy_to_pasteboard(content)
        except pyperclip.PyperclipException as e:
            logging.error(f"Clipboard error: {e}")
            return False
        print(f"📋 {len(content):,} chars copied to clipboard", file=sys.stderr)
        return True


# =============================================================================
# CONFIGURATION BUILDER
# =============================================================================

class ConfigBuilder:
    """Builds RepocatConfig from CLI arguments."""

    @staticmethod
    def from_args(args: argparse.Namespace) -> RepocatConfig:
        """Create config from parsed arguments."""
        root = Path(args.root_dir).resolve()
        output_name = ConfigBuilder._output_name(root, args.output)

        denylist = list(DEFAULT_DENYLIST)
        for entry in (args.exclude or []):
            if entry not in denylist:
                denylist.append(entry)
        # A custom output name must never be read back in on the next run
        if output_name not in denylist:
            denylist.append(output_name)

        return RepocatConfig(
            root_dir=root,
            output_name=output_name,
            denylist=tuple(denylist),
            copy_to_clipboard=args.copy,
        )

    @staticmethod
    def _output_name(root: Path, output: Optional[str]) -> str:
        """Normalize -o to a posix path relative to the root.

        Relative names are taken from the root, absolute ones must land inside it.
        """
        if not output:
            return Defaults.OUTPUT_NAME
        target = (root / Path(output).expanduser()).resolve()
        try:
            return target.relative_to(root).as_posix()
        except ValueError:
            raise OutputOutsideRootError(target, root) from None


# =============================================================================
# CLI PARSER
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="repocat",
        description="Concatenate a project's text files into one Markdown report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  repocat                      # Write ./repocat.md for the current dir
  repocat ./project            # Scan a specific directory
  repocat -o context.md        # Different output file (inside the root)
  repocat --exclude fixtures/  # Extra denylist substring
  repocat --copy               # Also copy the report to the clipboard
        """,
    )

    parser.add_argument(
        "root_dir",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Root project directory (default: current)",
    )
    parser.add_argument(
        "-o", "--output",
        metavar="FILE",
        help=f"Output file, relative to the root (default: {Defaults.OUTPUT_NAME})",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        metavar="SUBSTRING",
        help="Skip paths containing SUBSTRING (repeatable)",
    )
    parser.add_argument("--copy", action="store_true", help="Also copy the report to the clipboard")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every excluded path")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")

    return parser


# =============================================================================
# MAIN
# =============================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.root_dir.is_dir():
        logging.error(f"Directory not found: {args.root_dir}")
        return 1

    try:
        config = ConfigBuilder.from_args(args)
        assembler = ReportAssembler.from_config(config)
        report = assembler.run()
    except RepocatError as e:
        logging.error(str(e))
        return 1
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted", file=sys.stderr)
        return 130
    except Exception:
        logging.exception("Critical error")
        return 1

    print(
        f"✅ Wrote {len(report.included):,} files to {config.output_path}",
        file=sys.stderr,
    )

    if config.copy_to_clipboard and not OutputWriter.copy(report.render()):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
