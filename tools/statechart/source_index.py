"""
Source Resolution Context

Loads annotated Python source files once and exposes their parsed syntax
trees by file path and class name. The index is filled while it is built and
is only read afterwards, so one instance can be shared by every machine
extracted in a run.
"""

import ast
import glob
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

PathLike = Union[str, Path]

# Decorators that turn a method into a non-instance member
NON_INSTANCE_DECORATORS = {'staticmethod', 'classmethod'}


@dataclass
class TransitionMember:
    """One named instance member of a state class that may carry annotations"""
    name: str
    call: Optional[ast.Call] = None  # initializer, for assignment members
    decorators: List[ast.expr] = field(default_factory=list)  # for method members
    lineno: int = 0


@dataclass
class SourceFile:
    """A parsed source file and its module-level classes"""
    path: Path
    tree: ast.Module
    classes: Dict[str, ast.ClassDef] = field(default_factory=dict)


def _normalize(path: PathLike) -> Path:
    return Path(path).expanduser().resolve()


def _decorator_name(node: ast.expr) -> str:
    if isinstance(node, ast.Call):
        node = node.func
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return ''


class SourceIndex:
    """
    In-memory resolution context for state class lookups

    Files are addressed by resolved path, classes by their declared name
    inside a file.
    """

    def __init__(self):
        self._files: Dict[Path, SourceFile] = {}

    @classmethod
    def from_globs(cls, patterns: Iterable[str], root: Optional[PathLike] = None) -> 'SourceIndex':
        """
        Build an index from glob patterns

        Args:
            patterns: Glob patterns (``**`` allowed), relative to root
            root: Base directory for relative patterns (default: cwd)

        Returns:
            SourceIndex holding every matching .py file that parsed
        """
        index = cls()
        base = Path(root) if root is not None else Path.cwd()
        for pattern in patterns:
            full_pattern = pattern if Path(pattern).is_absolute() else str(base / pattern)
            matches = sorted(glob.glob(full_pattern, recursive=True))
            if not matches:
                logging.info(f"No source files match pattern: {pattern}")
            for match in matches:
                if match.endswith('.py') and Path(match).is_file():
                    index.add_file(match)
        return index

    def add_file(self, path: PathLike) -> Optional[SourceFile]:
        """Read and parse one file; unreadable or invalid files are skipped"""
        resolved = _normalize(path)
        if resolved in self._files:
            return self._files[resolved]
        try:
            text = resolved.read_text(encoding='utf-8')
        except OSError as e:
            logging.warning(f"Cannot read source file {resolved}: {e}")
            return None
        return self.add_source(resolved, text)

    def add_source(self, path: PathLike, text: str) -> Optional[SourceFile]:
        """Parse source text and register it under path"""
        resolved = _normalize(path)
        try:
            tree = ast.parse(text, filename=str(resolved))
        except SyntaxError as e:
            logging.warning(f"Skipping {resolved}: syntax error at line {e.lineno}: {e.msg}")
            return None

        source = SourceFile(path=resolved, tree=tree)
        for node in tree.body:
            if isinstance(node, ast.ClassDef):
                if node.name in source.classes:
                    # Python semantics: the later definition rebinds the name
                    logging.warning(
                        f"Class '{node.name}' is defined more than once in {resolved}; "
                        f"using the definition at line {node.lineno}"
                    )
                source.classes[node.name] = node

        self._files[resolved] = source
        return source

    def has_source(self, path: PathLike) -> bool:
        return _normalize(path) in self._files

    def get_source(self, path: PathLike) -> Optional[SourceFile]:
        return self._files.get(_normalize(path))

    def get_class(self, path: PathLike, name: str) -> Optional[ast.ClassDef]:
        """Look up a module-level class declaration by name in one file"""
        source = self.get_source(path)
        if source is None:
            return None
        return source.classes.get(name)

    @property
    def paths(self) -> List[Path]:
        return list(self._files)

    def instance_members(self, class_def: ast.ClassDef) -> List[TransitionMember]:
        """
        Collect the instance members of a class in declaration order

        Recognized forms:
        - class-level ``name = <call>`` / ``name: T = <call>``
        - ``self.name = <call>`` at the top level of ``__init__``
        - methods, with their decorator stack

        A later member with the same name replaces the earlier one.
        """
        members: Dict[str, TransitionMember] = {}

        for node in class_def.body:
            if isinstance(node, ast.Assign):
                if isinstance(node.value, ast.Call):
                    for target in node.targets:
                        if isinstance(target, ast.Name):
                            members[target.id] = TransitionMember(
                                name=target.id, call=node.value, lineno=node.lineno
                            )

            elif isinstance(node, ast.AnnAssign):
                if isinstance(node.target, ast.Name) and isinstance(node.value, ast.Call):
                    members[node.target.id] = TransitionMember(
                        name=node.target.id, call=node.value, lineno=node.lineno
                    )

            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                names = {_decorator_name(d) for d in node.decorator_list}
                if names & NON_INSTANCE_DECORATORS:
                    continue
                if node.name == '__init__':
                    for member in self._init_members(node):
                        members[member.name] = member
                    continue
                members[node.name] = TransitionMember(
                    name=node.name, decorators=list(node.decorator_list), lineno=node.lineno
                )

        return list(members.values())

    def _init_members(self, init: ast.FunctionDef) -> List[TransitionMember]:
        """Members assigned as ``self.<name> = <call>`` directly in __init__"""
        if not init.args.args:
            return []
        self_name = init.args.args[0].arg
        found = []
        for stmt in init.body:
            if isinstance(stmt, ast.Assign):
                targets, value = stmt.targets, stmt.value
            elif isinstance(stmt, ast.AnnAssign) and stmt.value is not None:
                targets, value = [stmt.target], stmt.value
            else:
                continue
            if not isinstance(value, ast.Call):
                continue
            for target in targets:
                if (isinstance(target, ast.Attribute)
                        and isinstance(target.value, ast.Name)
                        and target.value.id == self_name):
                    found.append(TransitionMember(name=target.attr, call=value, lineno=stmt.lineno))
        return found
