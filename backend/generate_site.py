"""
Local script: runs the full generation pipeline for one site identity and
writes the resulting page next to it.

    python3 generate_site.py identity.json [category] [out.html]

identity.json holds a SiteIdentity (camelCase keys, as the identity
service returns it).
"""

import asyncio
import json
import os
import sys

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

if not os.getenv("ANTHROPIC_API_KEY"):
    print("ERROR: ANTHROPIC_API_KEY not set in .env")
    sys.exit(1)

if len(sys.argv) < 2:
    print(__doc__)
    sys.exit(1)

sys.path.insert(0, os.path.dirname(__file__))

from sitegen.llm_client import ModelClient
from sitegen.models import SiteIdentity
from sitegen.pipeline import generate_site

identity_path = sys.argv[1]
category = sys.argv[2] if len(sys.argv) > 2 else "local business"
out_path = sys.argv[3] if len(sys.argv) > 3 else os.path.splitext(identity_path)[0] + ".html"

with open(identity_path) as f:
    identity = SiteIdentity.model_validate(json.load(f))


async def main():
    async with ModelClient(api_key=os.getenv("ANTHROPIC_API_KEY")) as client:
        return await generate_site(client, identity, category)


result = asyncio.run(main())

with open(out_path, "w") as f:
    f.write(result.html)

print(result.thinking)
print(f"\nWrote {len(result.html)} chars to {out_path}")
if not result.validation.valid:
    print(f"Stripped unresolved placeholders: {result.validation.remaining}")
