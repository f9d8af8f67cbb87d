"""
Export .gab dialogue files to JSON for external renderers
"""

import sys
from pathlib import Path
from typing import List, Optional

from gab_forge.errors import GabError
from gab_forge.logging_config import setup_logging
from gab_forge.export.exporter import ScriptExporter
from gab_forge.parser.parser import ParseIssue, ScriptParser


def export_to_json(gab_path: Path, output_path: Optional[Path] = None) -> Path:
    """Export a .gab file to JSON format"""
    gab_path = Path(gab_path)

    issues: List[ParseIssue] = []
    script = ScriptParser().parse_path(gab_path, issues)

    if issues:
        print("⚠️  Warning: Dialogue has structural issues:")
        for issue in issues:
            print(f"  • {issue.message}")

    if output_path is None:
        output_path = gab_path.with_suffix(".json")

    ScriptExporter().export_to_json(script, output_path)

    print(f"✅ Exported to: {output_path}")
    print(f"   • {len(script.nodes)} nodes")
    print(f"   • {len(script.speakers)} speakers")

    return output_path


def main():
    """Main entry point"""
    setup_logging()

    if len(sys.argv) < 2:
        print("Usage: gab-export <dialogue_file.gab> [output.json]")
        print("\nExample:")
        print("  gab-export dialogue/cryoroom.gab build/cryoroom.json")
        sys.exit(1)

    gab_path = Path(sys.argv[1])

    if not gab_path.exists():
        print(f"❌ File not found: {gab_path}")
        sys.exit(1)

    output_path = None
    if len(sys.argv) >= 3:
        output_path = Path(sys.argv[2])

    try:
        export_to_json(gab_path, output_path)
    except (GabError, OSError) as e:
        print(f"❌ Export failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
