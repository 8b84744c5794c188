#!/usr/bin/env python3
"""
Smoke test script for the German Contract Analyzer API
Exercises the endpoints of a running server with a sample contract.
"""

import asyncio
import sys

import httpx

BASE_URL = "http://localhost:8080"

SAMPLE_CONTRACT = (
    "Freier Werkvertrag\n"
    "§ 1 Vertragsgegenstand\n"
    "Der Auftragnehmer erstellt für den Auftraggeber eine Webanwendung.\n"
    "§ 2 Arbeitszeit\n"
    "Der Auftragnehmer arbeitet täglich von 9 bis 17 Uhr in den Räumen des Auftraggebers.\n"
    "§ 3 Vergütung\n"
    "Die Vergütung beträgt 50 EUR pro Stunde und wird monatlich abgerechnet.\n"
)


async def check_health(client: httpx.AsyncClient) -> bool:
    """Check the health endpoint."""
    print("🏥 Checking health...")

    response = await client.get(f"{BASE_URL}/health")
    if response.status_code != 200:
        print(f"❌ Health check failed: {response.status_code}")
        return False

    data = response.json()
    print(f"✅ Health check passed: {data['status']}")
    print(f"   Version: {data['version']}")
    print(f"   AI configured: {data['configured']}")
    return True


async def check_parse_document(client: httpx.AsyncClient):
    """Upload the sample contract as a text file."""
    print("\n📄 Checking document parsing...")

    files = {"file": ("werkvertrag.txt", SAMPLE_CONTRACT.encode("utf-8"), "text/plain")}
    response = await client.post(f"{BASE_URL}/api/parse-document", files=files)
    if response.status_code != 200:
        print(f"❌ Parsing failed: {response.status_code}")
        print(f"   Response: {response.text}")
        return None

    contract = response.json()["contract"]
    print("✅ Document parsed")
    print(f"   Pages: {len(contract['pages'])}")
    print(f"   Sections: {len(contract['sections'])}")
    return contract


async def check_classification(client: httpx.AsyncClient) -> None:
    """Classify the sample contract."""
    print("\n🏷️  Checking classification...")

    response = await client.post(f"{BASE_URL}/api/classify-contract", json={"content": SAMPLE_CONTRACT})
    if response.status_code != 200:
        print(f"❌ Classification failed: {response.status_code}")
        return

    classification = response.json()["classification"]
    print(f"✅ Classified as {classification['primaryType']} ({classification['confidence']:.2f})")
    for factor in classification["riskFactors"]:
        print(f"   Risk: {factor}")


async def check_analysis(client: httpx.AsyncClient, contract: dict):
    """Run the full analysis on the parsed contract."""
    print("\n⚖️  Checking analysis...")

    payload = {"content": contract["content"], "name": contract["name"], "sections": contract["sections"]}
    response = await client.post(f"{BASE_URL}/api/analyze-contract", json=payload)
    if response.status_code != 200:
        print(f"❌ Analysis failed: {response.status_code}")
        print(f"   Response: {response.text[:300]}")
        return None

    data = response.json()
    analysis = data["analysis"]
    print("✅ Analysis completed")
    print(f"   Overall risk: {analysis['overallRisk']}")
    print(f"   Annotations: {len(analysis['annotations'])}")
    print(f"   Highlights: {len(data['highlights']['spans'])}")
    print(f"   Unlocated: {len(data['highlights']['unlocatedAnnotationIds'])}")
    return analysis


async def check_highlights(client: httpx.AsyncClient, contract: dict, annotations: list) -> None:
    """Recompute highlights for the analysis annotations without a model call."""
    print("\n🖍️  Checking highlight recomputation...")

    payload = {"content": contract["content"], "sections": contract["sections"], "annotations": annotations}
    response = await client.post(f"{BASE_URL}/api/highlights", json=payload)
    if response.status_code != 200:
        print(f"❌ Highlights failed: {response.status_code}")
        return

    spans = response.json()["spans"]
    print(f"✅ {len(spans)} highlight spans")
    for span in spans[:5]:
        quoted = contract["content"][span["start"]:span["end"]]
        print(f"   [{span['severity']}] {quoted[:60]}")


async def main() -> int:
    """Run all checks."""
    print("🚀 German Contract Analyzer API smoke test")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=180.0) as client:
        if not await check_health(client):
            print("❌ Server is not running or unhealthy. Please start the server first.")
            return 1

        contract = await check_parse_document(client)
        if not contract:
            return 1

        await check_classification(client)

        analysis = await check_analysis(client, contract)
        if analysis:
            await check_highlights(client, contract, analysis["annotations"])

    print("\n" + "=" * 60)
    print("🎉 Smoke test finished")
    return 0


if __name__ == "__main__":
    print("Make sure the server is running: python main.py")
    print()

    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted by user.")
    except httpx.HTTPError as e:
        print(f"\n\n❌ Request error: {str(e)}")
        sys.exit(1)
