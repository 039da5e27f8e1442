from __future__ import annotations

import argparse
import json
import logging
import shutil
import time
import urllib.error
import urllib.request
from collections import Counter
from pathlib import Path

from skillshelf.config import DEFAULT_CONFIG_PATH, ShelfConfig
from skillshelf.skills import FrontmatterError, MarkdownSkillLibrary, SkillDocument, SkillError, load_skill, split_frontmatter
from skillshelf.skills.base import NAME_PATTERN

logger = logging.getLogger(__name__)


def build_skill_library(config: ShelfConfig) -> MarkdownSkillLibrary:
    return MarkdownSkillLibrary(config.resolved_skills_dir(), usage_path=config.resolved_usage_path())


def build_lint_registry(config: ShelfConfig, extra_disabled: list[str] | None = None):
    from skillshelf.lint import LintRegistry, builtin_rules

    disabled = list(config.disabled_rules) + list(extra_disabled or [])
    return LintRegistry(builtin_rules(), disabled=disabled, severity_overrides=config.rule_severity)


def build_lint_context(config: ShelfConfig, skills: list[SkillDocument]):
    from skillshelf.lint import LintContext

    return LintContext(
        skills_dir=config.resolved_skills_dir(),
        skills=skills,
        required_sections=list(config.required_sections),
        max_name_chars=config.max_name_chars,
        max_description_chars=config.max_description_chars,
    )


def lint_library(
    config: ShelfConfig,
    skills: list[SkillDocument],
    extra_disabled: list[str] | None = None,
    library: list[SkillDocument] | None = None,
):
    """Lint ``skills``; cross-skill rules see ``library`` plus ``skills`` (default: ``skills`` alone)."""
    registry = build_lint_registry(config, extra_disabled)
    known = list(skills) if library is None else _merge_documents(library, skills)
    return registry.run(skills, build_lint_context(config, known))


def _merge_documents(library: list[SkillDocument], extra: list[SkillDocument]) -> list[SkillDocument]:
    # Keyed by real path; a listed file replaces its library copy.
    by_path = {skill.path.resolve(): skill for skill in library}
    for skill in extra:
        by_path[skill.path.resolve()] = skill
    return list(by_path.values())


def _collect_paths(paths: list[str]) -> list[SkillDocument]:
    skills: list[SkillDocument] = []
    for raw in paths:
        path = Path(raw).expanduser().resolve()
        if path.is_file():
            skills.append(load_skill(path, path.parent.parent))
        elif path.is_dir():
            skills.extend(MarkdownSkillLibrary(path, usage_path=None).list_skills(include_empty=True))
        else:
            raise RuntimeError(f"path does not exist: {path}")
    return skills


def _print_report(report, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
        return
    for finding in report.findings:
        print(f"{finding.location()}: {finding.severity.value} [{finding.rule}] {finding.message}")
    counts = report.counts()
    print(
        f"{report.skills_checked} skills checked: "
        f"{counts['error']} errors, {counts['warning']} warnings, {counts['info']} infos"
    )


def cmd_init(args: argparse.Namespace) -> int:
    config_path = Path(args.config).expanduser()
    cfg = ShelfConfig.load(config_path) if config_path.exists() else ShelfConfig()

    if args.workspace_root:
        cfg.workspace_root = str(Path(args.workspace_root).expanduser().resolve())
    if args.skills_path:
        cfg.skills_path = args.skills_path
    if args.author:
        cfg.default_author = args.author
    if args.license:
        cfg.default_license = args.license

    cfg.validate()
    path = cfg.save(config_path)

    skills_dir = cfg.resolved_skills_dir()
    skills_dir.mkdir(parents=True, exist_ok=True)
    readme = skills_dir / "README.md"
    if not readme.exists():
        readme.write_text(
            "# Skills\n\nOne folder per skill: `<category>/<name>/SKILL.md`.\n",
            encoding="utf-8",
        )
    cfg.resolved_templates_dir().mkdir(parents=True, exist_ok=True)

    print(f"Saved config to {path}")
    print(f"Skills directory: {skills_dir}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    cfg = ShelfConfig.load(args.config)
    skills = build_skill_library(cfg).list_skills()
    if args.category:
        skills = [skill for skill in skills if skill.category == args.category]

    if args.json:
        print(json.dumps([skill.to_dict() for skill in skills], indent=2))
        return 0
    if not skills:
        print("No skills found.")
        return 0
    for skill in skills:
        prefix = f"{skill.category}/" if skill.category and skill.category != skill.name else ""
        print(f"- {prefix}{skill.name}: {skill.description}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    cfg = ShelfConfig.load(args.config)
    skill = build_skill_library(cfg).get(args.name)

    print(f"Name: {skill.name}")
    print(f"Path: {skill.path}")
    print(f"Category: {skill.category or '-'}")
    print(f"Description: {skill.description}")
    print(f"License: {skill.license or '-'}")
    print(f"Author: {skill.metadata.author or '-'}")
    print(f"Version: {skill.metadata.version or '-'}")
    if skill.requires:
        print(f"Requires: {', '.join(skill.requires)}")
    if skill.sections:
        print("Sections:")
        for section in skill.sections:
            print(f"  {'  ' * (section.level - 1)}- {section.title}")
    steps = skill.workflow_steps()
    if steps:
        print("Workflow:")
        for number, step in enumerate(steps, start=1):
            print(f"  {number}. {step}")
    if args.body:
        print()
        print(skill.body.strip())
    return 0


def cmd_lint(args: argparse.Namespace) -> int:
    cfg = ShelfConfig.load(args.config)
    library = build_skill_library(cfg).list_skills(include_empty=True)
    skills = _collect_paths(args.paths) if args.paths else library

    report = lint_library(cfg, skills, extra_disabled=args.disable, library=library)
    _print_report(report, args.json)
    return 0 if report.ok(strict=args.strict or cfg.strict) else 1


def cmd_rules(args: argparse.Namespace) -> int:
    cfg = ShelfConfig.load(args.config)
    registry = build_lint_registry(cfg)
    for name in registry.names():
        rule = registry.get(name)
        state = " (disabled)" if name in registry.disabled else ""
        print(f"- {name} [{registry.severity_of(rule).value}]{state}: {rule.description}")
    return 0


def cmd_index(args: argparse.Namespace) -> int:
    from skillshelf.catalog import build_catalog, write_catalog

    cfg = ShelfConfig.load(args.config)
    skills = build_skill_library(cfg).list_skills()
    catalog = build_catalog(skills)
    output = Path(args.output).expanduser() if args.output else cfg.resolved_index_path()
    path = write_catalog(catalog, output, fmt=args.format)
    print(f"Wrote {catalog.total} skills to {path}")
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    from skillshelf.core import SkillIndex

    cfg = ShelfConfig.load(args.config)
    index = SkillIndex().build(build_skill_library(cfg).list_skills())
    results = index.search(args.query, k=args.k or cfg.search_top_k, min_score=cfg.min_search_score)

    if args.json:
        print(json.dumps([{"name": skill.name, "score": round(score, 4), "path": str(skill.path)} for skill, score in results], indent=2))
        return 0
    if not results:
        print("No matching skills.")
        return 0
    for skill, score in results:
        print(f"{score:.3f}  {skill.name}: {skill.description}")
    return 0


def cmd_select(args: argparse.Namespace) -> int:
    cfg = ShelfConfig.load(args.config)
    library = build_skill_library(cfg)
    selected = library.select_for_message(args.message, max_skills=args.max or cfg.max_selected_skills)
    if not selected:
        print("No skills selected.")
        return 0
    for skill in selected:
        print(f"- {skill.name}: {skill.path}")
    return 0


def cmd_new(args: argparse.Namespace) -> int:
    from skillshelf.templates import TemplateLoader

    cfg = ShelfConfig.load(args.config)
    loader = TemplateLoader(workspace_root=Path(cfg.workspace_root).expanduser(), templates_dir_name=cfg.templates_path)
    path = loader.create_skill(
        cfg.resolved_skills_dir(),
        args.name,
        category=args.category,
        description=args.description,
        author=args.author or cfg.default_author,
        license=cfg.default_license,
        version=cfg.default_version,
        max_name_chars=cfg.max_name_chars,
    )
    print(f"Created {path}")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    cfg = ShelfConfig.load(args.config)
    library = build_skill_library(cfg)
    skills = library.list_skills()

    print(f"Skills: {len(skills)}")
    if not skills:
        return 0

    print("\nBy category:")
    for category, members in library.categories().items():
        print(f"  {category or '(root)'}: {len(members)}")

    licenses = Counter(skill.license or "(none)" for skill in skills)
    print("\nBy license:")
    for name, count in licenses.most_common():
        print(f"  {name}: {count}")

    authors = Counter(skill.metadata.author or "(none)" for skill in skills)
    print("\nBy author:")
    for name, count in authors.most_common():
        print(f"  {name}: {count}")

    usage = library.get_usage_stats()
    if usage:
        print("\nSelections:")
        for name, count in sorted(usage.items(), key=lambda kv: (-kv[1], kv[0])):
            print(f"  {name}: {count}")
    return 0


def cmd_import_skills(args: argparse.Namespace) -> int:
    from skillshelf.templates import is_valid_category

    cfg = ShelfConfig.load(args.config)
    source = Path(args.source).expanduser().resolve()
    if not source.exists():
        raise RuntimeError(f"source directory does not exist: {source}")
    if args.category is not None and not is_valid_category(args.category):
        raise ValueError(f"invalid category '{args.category}'")

    skills_dir = cfg.resolved_skills_dir()
    if args.category:
        skills_dir = skills_dir / args.category
    skills_dir.mkdir(parents=True, exist_ok=True)

    imported = 0
    for skill_md in sorted(source.glob("*/SKILL.md")):
        name = skill_md.parent.name
        target_dir = skills_dir / name
        if target_dir.exists():
            target_dir = skills_dir / f"imported-{name}"
        if target_dir.exists():
            logger.warning("skipping %s: %s already exists", skill_md.parent, target_dir)
            continue
        shutil.copytree(skill_md.parent, target_dir)
        imported += 1

    print(f"Imported {imported} skills into {skills_dir}")
    return 0


def cmd_install_skill(args: argparse.Namespace) -> int:
    from skillshelf.templates import is_valid_category

    repo = args.repo.strip()
    if repo.count("/") != 1 or not all(repo.split("/")):
        print(f"Error: repo must be in 'user/repo' format, got: {repo!r}")
        return 1

    cfg = ShelfConfig.load(args.config)
    if args.category is not None and not is_valid_category(args.category):
        print(f"Error: invalid category '{args.category}'")
        return 1
    skill_name = repo.split("/")[-1]
    skill_content: str | None = None

    for branch in ("main", "master"):
        url = f"https://raw.githubusercontent.com/{repo}/{branch}/SKILL.md"
        try:
            with urllib.request.urlopen(url, timeout=15) as resp:
                skill_content = resp.read().decode("utf-8")
            break
        except urllib.error.HTTPError as exc:
            if exc.code == 404:
                continue
            print(f"Error fetching {url}: HTTP {exc.code}")
            return 1
        except urllib.error.URLError as exc:
            print(f"Error fetching {url}: {exc.reason}")
            return 1

    if skill_content is None:
        print(f"Error: SKILL.md not found in {repo} (tried main and master branches)")
        return 1

    try:
        frontmatter, _ = split_frontmatter(skill_content)
    except FrontmatterError as exc:
        print(f"Error: {repo} SKILL.md has invalid frontmatter: {exc}")
        return 1
    if not frontmatter:
        print(f"Error: {repo} SKILL.md has no frontmatter")
        return 1
    declared = frontmatter.get("name")
    if isinstance(declared, str) and declared.strip():
        skill_name = declared.strip()
    if not NAME_PATTERN.match(skill_name) or len(skill_name) > cfg.max_name_chars:
        print(f"Error: invalid skill name '{skill_name}' in {repo}")
        return 1

    skills_dir = cfg.resolved_skills_dir()
    target_dir = skills_dir / args.category / skill_name if args.category else skills_dir / skill_name
    skill_file = target_dir / "SKILL.md"
    if skill_file.exists():
        print(f"Error: {skill_file} already exists")
        return 1
    target_dir.mkdir(parents=True, exist_ok=True)
    skill_file.write_text(skill_content, encoding="utf-8")
    print(f"Installed skill '{skill_name}' to {skill_file}")
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    print("skillshelf doctor: checking library health...\n")
    config_path = Path(args.config).expanduser()

    print("1. Configuration")
    if config_path.exists():
        print(f"  ✅ Config found at: {config_path}")
    else:
        print(f"  ⚠️  Config missing at: {config_path} (defaults in use, run 'skillshelf init' to create it)")
    try:
        cfg = ShelfConfig.load(config_path)
        cfg.validate()
        print("  ✅ Config is valid.")
    except ValueError as e:
        print(f"  ❌ Config parsing failed: {e}")
        return 1

    print("\n2. Directories")
    skills_dir = cfg.resolved_skills_dir()
    if not skills_dir.is_dir():
        print(f"  ❌ Skills directory: {skills_dir} [Not found]")
        return 1
    print(f"  ✅ Skills directory: {skills_dir}")
    templates_dir = cfg.resolved_templates_dir()
    if (templates_dir / "SKILL.md").is_file():
        print(f"  ✅ Custom template: {templates_dir / 'SKILL.md'}")
    else:
        print("  - Using the built-in SKILL.md template")

    print("\n3. Library")
    skills = build_skill_library(cfg).list_skills(include_empty=True)
    print(f"  - {len(skills)} SKILL.md files")
    report = lint_library(cfg, skills)
    counts = report.counts()
    marker = "✅" if report.ok() else "❌"
    print(f"  {marker} {counts['error']} errors, {counts['warning']} warnings, {counts['info']} infos")

    if not report.ok():
        print("\nRun 'skillshelf lint' for details.")
        return 1
    print("\nDiagnosis complete. Library looks healthy.")
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    cfg = ShelfConfig.load(args.config)
    library = build_skill_library(cfg)
    library.reload_if_changed()
    print(f"Watching {library.skills_dir} (Ctrl+C to stop)")

    iterations = 0
    try:
        while args.iterations <= 0 or iterations < args.iterations:
            time.sleep(args.interval)
            iterations += 1
            changed = library.reload_if_changed()
            if not changed:
                continue
            logger.info("%d skill file(s) changed", changed)
            report = lint_library(cfg, library.list_skills(include_empty=True))
            _print_report(report, as_json=False)
    except KeyboardInterrupt:
        pass
    return 0


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skillshelf", description="Lint, index and search SKILL.md libraries")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v info, -vv debug)")
    parser.set_defaults(func=lambda _: parser.print_help() or 0)

    sub = parser.add_subparsers(dest="command")

    def add(name: str, help_text: str, func) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Path to config file")
        p.set_defaults(func=func)
        return p

    p_init = add("init", "Create or update config and library folders", cmd_init)
    p_init.add_argument("--workspace-root")
    p_init.add_argument("--skills-path")
    p_init.add_argument("--author", help="Default metadata.author for new skills")
    p_init.add_argument("--license", help="Default license for new skills")

    p_list = add("list", "List skills", cmd_list)
    p_list.add_argument("--category")
    p_list.add_argument("--json", action="store_true")

    p_show = add("show", "Show one skill", cmd_show)
    p_show.add_argument("name")
    p_show.add_argument("--body", action="store_true", help="Print the markdown body")

    p_lint = add("lint", "Check SKILL.md structure", cmd_lint)
    p_lint.add_argument("paths", nargs="*", help="Skill files or folders (default: the library)")
    p_lint.add_argument("--strict", action="store_true", help="Fail on warnings too")
    p_lint.add_argument("--json", action="store_true")
    p_lint.add_argument("--disable", nargs="+", default=[], metavar="RULE")

    add("rules", "List lint rules", cmd_rules)

    p_index = add("index", "Write the skill catalogue", cmd_index)
    p_index.add_argument("--output")
    p_index.add_argument("--format", choices=["markdown", "json"])

    p_search = add("search", "Search skills", cmd_search)
    p_search.add_argument("query")
    p_search.add_argument("-k", type=int, default=None, help="Number of results")
    p_search.add_argument("--json", action="store_true")

    p_select = add("select", "Pick skills for an agent message", cmd_select)
    p_select.add_argument("message")
    p_select.add_argument("--max", type=int, default=None)

    p_new = add("new", "Scaffold a new skill", cmd_new)
    p_new.add_argument("name")
    p_new.add_argument("--category")
    p_new.add_argument("--description")
    p_new.add_argument("--author")

    add("stats", "Library statistics", cmd_stats)

    p_import = add("import-skills", "Import SKILL.md folders from another directory", cmd_import_skills)
    p_import.add_argument("--source", required=True, help="Directory containing skill folders (each folder has SKILL.md)")
    p_import.add_argument("--category")

    p_install = add("install-skill", "Install a skill from GitHub (user/repo)", cmd_install_skill)
    p_install.add_argument("repo", help="GitHub repo in 'user/repo' format")
    p_install.add_argument("--category")

    add("doctor", "Check library health", cmd_doctor)

    p_watch = add("watch", "Re-lint skills when files change", cmd_watch)
    p_watch.add_argument("--interval", type=float, default=2.0, help="Seconds between scans")
    p_watch.add_argument("--iterations", type=int, default=0, help="Stop after N scans (0: run until interrupted)")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        return int(args.func(args))
    except (SkillError, ValueError, FileExistsError, RuntimeError) as exc:
        print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
