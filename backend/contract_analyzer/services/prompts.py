"""
Prompt templates for contract classification and analysis.
All prompts are German; the model answers in JSON only.
"""

from typing import Dict, Optional

from ..models.schemas import ContractType, StructuralIndicators


DEDUPLICATION_RULES = """

HINWEISE ZUR VERMEIDUNG VON DUPLIKATEN:
- Ähnliche Probleme zu EINER Annotation zusammenfassen
- Jedes rechtliche Problem nur EINMAL nennen
- Keine Wiederholungen zwischen "annotations" und "recommendations"
- Den schwerwiegendsten Aspekt eines Problems priorisieren"""


ANSWER_FORMAT = """

WICHTIG: Antworten Sie AUSSCHLIESSLICH im folgenden JSON-Format:
{
  "overallRisk": "low|medium|high|critical",
  "summary": "Kurze Zusammenfassung der wichtigsten Erkenntnisse",
  "annotations": [
    {
      "id": "eindeutige_id",
      "type": "legal_risk|compliance_issue|improvement_suggestion|language_clarity|missing_clause|gdpr_concern",
      "severity": "critical|high|medium|low|info",
      "sourceType": "specific_text|structural_inference|missing_clause",
      "text": "Wörtliches Zitat aus dem Vertrag (bei specific_text)",
      "comment": "Präzise Beschreibung des Problems (max. 100 Zeichen)",
      "explanation": "Rechtliche Begründung",
      "legalReference": "z.B. § 307 BGB",
      "suggestedReplacement": "Vorgeschlagener Ersatztext (optional)",
      "contributingFactors": [
        {
          "clauseReference": "§ 3",
          "factorText": "Wörtliches Zitat der beitragenden Klausel",
          "severity": "high",
          "explanation": "Warum diese Klausel beiträgt"
        }
      ],
      "textEvidence": ["Wörtliche Belegstellen (bei structural_inference)"],
      "recommendedHighlight": "Repräsentativer Textausschnitt zum Markieren",
      "confidence": 0.9
    }
  ],
  "recommendations": [
    {
      "title": "Empfehlungstitel",
      "description": "Konkrete Handlungsempfehlung",
      "priority": "high|medium|low",
      "category": "Compliance|BGB|Arbeitsrecht|Datenschutz",
      "actionRequired": true
    }
  ],
  "compliance": [
    {
      "law": "BGB",
      "section": "§ 307",
      "status": "compliant|non_compliant|unclear",
      "description": "Beschreibung",
      "recommendation": "Empfehlung bei Nicht-Compliance"
    }
  ]
}

REGELN FÜR "sourceType":
- specific_text: Das Problem steckt in einer konkreten Formulierung; "text" zitiert sie wörtlich.
- structural_inference: Das Problem ergibt sich erst aus mehreren Klauseln zusammen
  (z.B. Scheinselbstständigkeit); jede beitragende Klausel in "contributingFactors" zitieren.
- missing_clause: Eine erforderliche Regelung fehlt ganz; kein Zitat angeben."""


SPECIALIZED_PROMPTS: Dict[ContractType, str] = {
    ContractType.ARBEITSVERTRAG: """Sie sind Fachanwalt für Arbeitsrecht. Prüfen Sie diesen ARBEITSVERTRAG auf rechtliche Risiken und Compliance.

PRÜFBEREICHE:
1. Kündigung (§ 622 BGB, KSchG): Fristen, Probezeit höchstens 6 Monate
2. Vergütung und Arbeitszeit (MiLoG, ArbZG): Mindestlohn, Höchstarbeitszeit, Überstunden
3. Urlaub (BUrlG): gesetzlicher Mindesturlaub
4. Nachweisgesetz (§ 2 NachwG): alle Pflichtangaben vorhanden?
5. AGB-Kontrolle (§§ 305-310 BGB), AGG, DSGVO

SCHWERPUNKT: Verstöße gegen zwingendes Arbeitsrecht und unwirksame Klauseln.""",

    ContractType.WERKVERTRAG: """Sie sind Experte für Werkvertragsrecht. Prüfen Sie diesen WERKVERTRAG auf rechtliche Risiken.

PRÜFBEREICHE:
1. Werkerfolg (§ 631 BGB): eindeutige Beschreibung, messbare Abnahmekriterien
2. Vergütung und Abnahme (§§ 632, 640 BGB): Fälligkeit, Abnahmeverfahren, Gefahrübergang
3. Mängelrechte (§§ 634-639 BGB): Nacherfüllung, Verjährung, Haftungsausschlüsse
4. Scheinselbstständigkeit (§ 611a BGB, § 7 SGB IV): Weisungsfreiheit, eigene Betriebsmittel, Unternehmerrisiko

SCHWERPUNKT: Abgrenzung zu Arbeits- und Dienstvertrag sowie Gewährleistungsrisiken.""",

    ContractType.DIENSTVERTRAG: """Sie sind Jurist mit Schwerpunkt DIENSTVERTRÄGE nach § 611 BGB. Prüfen Sie diesen Vertrag auf rechtliche Risiken.

PRÜFBEREICHE:
1. Leistungsbeschreibung: Tätigkeit konkret genug, keine Erfolgsschuld oder Abnahme
2. Vergütung und Auslagen (§§ 612, 670 BGB): Abrechnung, Reisekosten, Umsatzsteuer
3. Datenschutz: Auftragsverarbeitung nach Art. 28 DSGVO
4. Selbstständigkeit (§ 7 SGB IV): freie Zeiteinteilung, Vertretungsrecht, keine Weisungsbindung
5. Haftung (§§ 276, 278, 280, 307 BGB)
6. Kündigung und Dokumentation (§§ 627, 666 BGB)

SCHWERPUNKT: Scheinselbstständigkeit, DSGVO-Verstöße und unangemessene Haftungsklauseln.""",

    ContractType.NDA: """Sie sind Experte für Geheimhaltungsvereinbarungen. Prüfen Sie diese GEHEIMHALTUNGSVEREINBARUNG.

PRÜFBEREICHE:
1. Definition vertraulicher Informationen und Ausnahmen
2. Umfang und Dauer der Geheimhaltungspflicht, Weitergabe an Berater
3. Rückgabe und Löschung
4. Vertragsstrafen (§ 343 BGB): Angemessenheit und Durchsetzbarkeit

SCHWERPUNKT: Verhältnismäßigkeit und DSGVO-Konformität.""",

    ContractType.SERVICE_AGREEMENT: """Sie sind Experte für IT- und Serviceverträge. Prüfen Sie dieses SERVICE AGREEMENT.

PRÜFBEREICHE:
1. Service Level: Verfügbarkeit, Reaktions- und Lösungszeiten, Pönalen
2. Leistungsbeschreibung und Change-Management
3. Haftung bei Ausfall und Datenverlust
4. Datenschutz und IT-Sicherheit (Art. 28 DSGVO)

SCHWERPUNKT: Durchsetzbarkeit der SLAs und Datenschutz.""",

    ContractType.PURCHASE_AGREEMENT: """Sie sind Experte für Kaufrecht. Prüfen Sie diesen KAUFVERTRAG.

PRÜFBEREICHE:
1. Kaufgegenstand (§ 433 BGB): Beschaffenheit, Menge, Spezifikation
2. Lieferung und Gefahrübergang (§§ 446, 447 BGB)
3. Gewährleistung (§§ 434-445 BGB): Nacherfüllung, Verjährung
4. Eigentumsvorbehalt (§ 449 BGB)

SCHWERPUNKT: Gewährleistungsausschlüsse und Eigentumsübergang.""",

    ContractType.RENTAL_AGREEMENT: """Sie sind Experte für Mietrecht. Prüfen Sie diesen MIETVERTRAG.

PRÜFBEREICHE:
1. Mietsache und Nutzung (§ 535 BGB)
2. Miete und Betriebskosten (BetrKV), Staffel- oder Indexmiete
3. Kaution (§ 551 BGB): höchstens drei Nettokaltmieten
4. Kündigung (§ 573 BGB) und Sonderkündigungsrechte

SCHWERPUNKT: Unwirksame Klauseln im Wohnraummietrecht.""",

    ContractType.GENERAL: """Sie sind Experte für Vertragsrecht. Prüfen Sie diesen VERTRAG auf allgemeine rechtliche Risiken.

PRÜFBEREICHE:
1. Vertragsschluss und Form (§§ 145-157 BGB)
2. AGB-Kontrolle (§§ 305-310 BGB), Transparenzgebot
3. Leistungsstörungen (§§ 280-326 BGB)
4. Haftung, Gerichtsstand, Rechtswahl, salvatorische Klausel

SCHWERPUNKT: Unwirksame AGB und ausgewogene Vertragsgestaltung.""",
}


CLASSIFICATION_PROMPT = """Sie sind Experte für die Klassifikation deutscher Verträge. Ordnen Sie den folgenden Vertrag einer Kategorie zu.

ABGRENZUNG:
- WERKVERTRAG (§ 631 BGB): Erfolg geschuldet, konkretes Werk, Abnahme
- DIENSTVERTRAG (§ 611 BGB): Tätigkeit geschuldet, zeitbasierte Vergütung
- ARBEITSVERTRAG: weisungsgebunden, persönliche Arbeitsleistung, Eingliederung in den Betrieb

STRUKTURELLE INDIKATOREN:
- Liefergegenstände: {has_deliverables}
- Zeitbasierte Vergütung: {has_time_based_payment}
- Erfolgskriterien: {has_success_metrics}
- Arbeitsrechtliche Begriffe: {has_employment_terms}
- Geheimhaltung: {has_confidentiality_terms}
- Anzahl Klauseln: {clause_count}

Antworten Sie NUR im folgenden JSON-Format:
{{
  "primaryType": "arbeitsvertrag|werkvertrag|dienstvertrag|nda|service_agreement|purchase_agreement|rental_agreement|general",
  "confidence": 0.9,
  "secondaryTypes": [{{"type": "nda", "confidence": 0.3, "reasoning": "Begründung"}}],
  "reasoning": "Begründung der Klassifikation",
  "isCompoundContract": false,
  "riskFactors": ["Risikofaktor"]
}}

VERTRAGSINHALT:
{excerpt}"""


def get_system_prompt(contract_type: Optional[ContractType]) -> str:
    """Specialized instructions for the contract type plus the answer format."""
    base = SPECIALIZED_PROMPTS.get(contract_type or ContractType.GENERAL, SPECIALIZED_PROMPTS[ContractType.GENERAL])
    return base + DEDUPLICATION_RULES + ANSWER_FORMAT


def build_user_prompt(name: str, content: str, contract_type: Optional[ContractType]) -> str:
    type_label = (contract_type or ContractType.GENERAL).value
    return f"""Bitte analysieren Sie den folgenden deutschen Vertrag ({type_label}):

VERTRAGSNAME: {name}
KLASSIFIZIERT ALS: {type_label}

VERTRAGSINHALT:
{content}

Identifizieren Sie alle problematischen Klauseln, fehlenden Bestimmungen und Compliance-Verstöße. Antworten Sie im geforderten JSON-Format."""


def build_classification_prompt(content: str, indicators: StructuralIndicators, excerpt_chars: int = 3000) -> str:
    excerpt = content[:excerpt_chars]
    if len(content) > excerpt_chars:
        excerpt += "..."
    return CLASSIFICATION_PROMPT.format(
        has_deliverables=indicators.has_deliverables,
        has_time_based_payment=indicators.has_time_based_payment,
        has_success_metrics=indicators.has_success_metrics,
        has_employment_terms=indicators.has_employment_terms,
        has_confidentiality_terms=indicators.has_confidentiality_terms,
        clause_count=indicators.clause_count,
        excerpt=excerpt,
    )
