from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, asdict
from pathlib import Path

import ubelt as ub

from .runtime import VBOXMANAGE
from .util import expand

APPNAME = 'vboxprov'


@dataclass
class HostConfig:
    vboxmanage: str = VBOXMANAGE
    vbox_user_home: str = ''


@dataclass
class PathsConfig:
    working_dir: str = '~/VirtualBox VMs/vboxprov'
    lock_dir: str = ''


@dataclass
class ProvisionerConfig:
    host: HostConfig = field(default_factory=HostConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    verbosity: int = 1

    def expanded_paths(self) -> 'ProvisionerConfig':
        self.paths.working_dir = expand(self.paths.working_dir)
        self.paths.lock_dir = (
            expand(self.paths.lock_dir)
            if self.paths.lock_dir
            else str(Path(self.paths.working_dir) / '.locks')
        )
        self.host.vbox_user_home = (
            expand(self.host.vbox_user_home) if self.host.vbox_user_home else ''
        )
        return self


def config_path() -> Path:
    p = ub.Path.appdir(APPNAME, type='config').ensuredir()
    return Path(p) / 'config.toml'


def _toml_escape(s: str) -> str:
    return s.replace('\\', '\\\\').replace('"', '\\"')


def dump_toml(cfg: ProvisionerConfig) -> str:
    d = asdict(cfg)
    lines: list[str] = []
    for section, body in d.items():
        if isinstance(body, dict):
            lines.append(f'[{section}]')
            for k, v in body.items():
                if isinstance(v, bool):
                    lines.append(f'{k} = {"true" if v else "false"}')
                elif isinstance(v, int):
                    lines.append(f'{k} = {v}')
                else:
                    lines.append(f'{k} = "{_toml_escape(str(v))}"')
            lines.append('')
        elif section == 'verbosity' and body != 1:
            lines.append(f'{section} = {body}')
            lines.append('')
    return '\n'.join(lines).rstrip() + '\n'


def load(path: Path) -> ProvisionerConfig:
    raw = tomllib.loads(path.read_text(encoding='utf-8'))
    cfg = ProvisionerConfig()
    for section in ('host', 'paths'):
        if section in raw and isinstance(raw[section], dict):
            sec = raw[section]
            obj = getattr(cfg, section)
            for k, v in sec.items():
                if hasattr(obj, k):
                    setattr(obj, k, v)
    if 'verbosity' in raw:
        cfg.verbosity = int(raw['verbosity'])
    return cfg


def load_or_default(path: Path | None = None) -> ProvisionerConfig:
    fpath = path or config_path()
    if not fpath.exists():
        return ProvisionerConfig()
    return load(fpath)


def save(path: Path, cfg: ProvisionerConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_toml(cfg), encoding='utf-8')
