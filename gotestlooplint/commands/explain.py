"""Explain command - what the rule reports and how to fix it.

NO EMOJIS: Windows Command Prompt uses CP1252 encoding which cannot
handle emoji characters. All output uses plain ASCII only.
"""

import click
from rich import box
from rich.markup import escape
from rich.panel import Panel

from gotestlooplint.rules.go.testloop_analyze import (
    METADATA,
    LoopCapturePatterns,
    TemplateKind,
    format_message,
)
from gotestlooplint.ui import console, print_header

EXPLANATION = """\
A closure handed to t.Run runs synchronously, unless it calls t.Parallel():
from that call on, the subtest is paused and resumed after the parent test
function returns, when the loop has already finished. A closure handed to
Ginkgo's It is never run inside the loop; the spec runner calls it later.
Either way, a loop variable read inside the closure can hold the value of a
later iteration (on Go versions before 1.22, the last one).

Fix: copy the variable before the closure captures it.

    for _, tc := range cases {
        tc := tc
        t.Run(tc.name, func(t *testing.T) {
            t.Parallel()
            check(t, tc)
        })
    }
"""


@click.command("explain")
@click.help_option("-h", "--help")
def explain():
    """Describe the loop variable capture check and its messages."""
    print_header(METADATA.name)
    console.print(escape(METADATA.doc))
    console.print()
    console.print(escape(EXPLANATION))

    # One package path per line; the panel crops anything wider than the console
    shapes = "\n".join([
        f"subtest:  <{LoopCapturePatterns.TEST_CONTEXT_TYPE}>.{LoopCapturePatterns.SUBTEST_METHOD}(name, func(t) {{ "
        f"t.{LoopCapturePatterns.PARALLEL_METHOD}(); ... }})",
        f"spec:     {LoopCapturePatterns.SPEC_FUNCTION}(description, func() {{ ... }}) from:",
        *(f"            {path}" for path in sorted(LoopCapturePatterns.GINKGO_PACKAGE_PATHS)),
    ])
    console.print(Panel(escape(shapes), title="Matched calls", box=box.ASCII, expand=False))

    for kind in TemplateKind:
        console.print(f"[info]{kind.value}[/info]: {escape(format_message(kind, '<name>'))}")
