import sys
import textwrap
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so `import typegen...` works locally
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


SCHEMA_SDL = textwrap.dedent(
    """
    type SiteMetadata {
      title: String
      description: String
    }

    type Site {
      siteMetadata: SiteMetadata
    }

    type Query {
      site: Site
    }
    """
)

HOOK_SOURCE = textwrap.dedent(
    """
    import React from "react"
    import { useStaticQuery, graphql } from "gatsby"

    export default function SEO() {
      const data = useStaticQuery(graphql`
        query PageQuery {
          site {
            siteMetadata {
              title
            }
          }
        }
      `)
      return <title>{data.site.siteMetadata.title}</title>
    }
    """
)

COMPONENT_SOURCE = textwrap.dedent(
    """
    import React from "react"
    import { StaticQuery, graphql } from "gatsby"

    const Header = () => (
      <StaticQuery
        query={graphql`
          query HeaderQuery {
            site {
              siteMetadata {
                description
              }
            }
          }
        `}
        render={data => <h1>{data.site.siteMetadata.description}</h1>}
      />
    )

    export default Header
    """
)


class ManualTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, delay, fn):
        self.delay = delay
        self.fn = fn
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    @property
    def active(self):
        return self.started and not self.cancelled

    def fire(self):
        if self.active:
            self.cancelled = True
            self.fn()


class ManualClock:
    """Timer factory recording every timer it hands out."""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, fn):
        t = ManualTimer(delay, fn)
        self.timers.append(t)
        return t

    @property
    def active(self):
        return [t for t in self.timers if t.active]

    def elapse(self):
        """Fire every armed timer, as if the debounce window passed."""
        for t in list(self.active):
            t.fire()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def clean_env(monkeypatch):
    for key in (
        "TYPEGEN_SCHEMA",
        "TYPEGEN_SCHEMA_OUTPUT",
        "TYPEGEN_TYPEDEFS_OUTPUT",
        "TYPEGEN_AUTO_FIX",
        "TYPEGEN_DEBOUNCE_SECS",
        "TYPEGEN_USE_POLLING",
        "TYPEGEN_EXTRA_DIRS",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def site(tmp_path, clean_env):
    """A small project: schema, two query-bearing sources, one plain file."""
    (tmp_path / "schema.graphql").write_text(SCHEMA_SDL, encoding="utf-8")
    pages = tmp_path / "src" / "pages"
    components = tmp_path / "src" / "components"
    pages.mkdir(parents=True)
    components.mkdir(parents=True)
    (pages / "index.tsx").write_text(HOOK_SOURCE, encoding="utf-8")
    (components / "header.tsx").write_text(COMPONENT_SOURCE, encoding="utf-8")
    (tmp_path / "src" / "util.ts").write_text("export const x = 1\n", encoding="utf-8")
    return tmp_path
