"""Prompt templates for the French literary correction and verification passes."""
from __future__ import annotations

import json
from typing import Optional

from corrector.engine.base import ChatMessage

_CORRECTION_RULES = """Éditeur littéraire expert. Corrige strictement l'orthographe et la grammaire.

RÈGLES CRITIQUES:
1. NE JAMAIS réécrire ou changer le style de l'auteur
2. Si une phrase est lourde mais correcte, ne touche à rien
3. Ne corrige que les fautes objectives
4. Ignore : ponctuation non grammaticale, style, anglicismes, majuscules, temps narratifs, noms propres.
5. Pour chaque faute, renvoie une fenêtre de 3 à 6 mots EXACTEMENT telle qu'elle apparaît dans la phrase originale (sans reformulation), et sa correction.
6. En cas de doute, ne corrige pas"""

_CORRECTION_FORMAT = """Renvoie un JSON:
{"corrections":[{"position":0,"original":"texte erroné","correction":"texte corrigé","type":"orthographe|grammaire|ponctuation|syntaxe","explication":"raison"}]}"""

_VERIFICATION_PROMPT = """Expert en correction littéraire. Vérifie si chaque correction proposée est pertinente.

FAUX POSITIF si la seule raison est:
- Les champs "original" et "correction" sont identiques
- La "correction" n'améliore pas réellement le texte
- L'explication est faible ou incorrecte
- Le type de faute ne correspond pas
- Un espace insécable est ajouté
- Le style d'apostrophe (ex: ' et ’)

Renvoie JSON:
{"results":[{"id":0,"valid":true|false,"reason":"pourquoi"}]}"""

_FEW_SHOT_USER = (
    "Il arrivas en courant, essouflé; la porte était fermée a clef. Ses yeux brillait de peur."
)

_FEW_SHOT_CORRECTIONS = [
    {
        "position": 3,
        "original": "arrivas",
        "correction": "arriva",
        "type": "grammaire",
        "explication": "Conjugaison 3e personne singulier",
    },
    {
        "position": 23,
        "original": "essouflé",
        "correction": "essoufflé",
        "type": "orthographe",
        "explication": "Double f",
    },
    {
        "position": 31,
        "original": ";",
        "correction": " ;",
        "type": "ponctuation",
        "explication": "Espace avant point-virgule",
    },
    {
        "position": 59,
        "original": "a clef",
        "correction": "à clé",
        "type": "orthographe",
        "explication": "Accent + orthographe moderne",
    },
    {
        "position": 77,
        "original": "brillait",
        "correction": "brillaient",
        "type": "grammaire",
        "explication": 'Accord pluriel avec "yeux"',
    },
]


def build_correction_system_prompt(
    style_guide: Optional[str] = None,
    retry_feedback: Optional[str] = None,
) -> str:
    """Compose the correction instructions, amended with style and retry feedback."""

    sections = [_CORRECTION_RULES]
    if style_guide:
        sections.append(f"Style auteur: {style_guide}")
    if retry_feedback:
        sections.append(f"URGENT - CORRECTION PRÉCÉDENTE REJETÉE :\n{retry_feedback}")
    sections.append(_CORRECTION_FORMAT)
    return "\n\n".join(sections)


def correction_few_shot() -> tuple[ChatMessage, ChatMessage]:
    """Return the example exchange shown to the engine before the real chunk."""

    return (
        ChatMessage(role="user", content=_FEW_SHOT_USER),
        ChatMessage(
            role="assistant",
            content=json.dumps({"corrections": _FEW_SHOT_CORRECTIONS}, ensure_ascii=False),
        ),
    )


def build_correction_messages(
    text: str,
    *,
    style_guide: Optional[str] = None,
    retry_feedback: Optional[str] = None,
) -> list[ChatMessage]:
    example_user, example_assistant = correction_few_shot()
    return [
        ChatMessage(role="system", content=build_correction_system_prompt(style_guide, retry_feedback)),
        example_user,
        example_assistant,
        ChatMessage(role="user", content=text),
    ]


def long_correction_feedback(max_words: int) -> str:
    """Feedback sent after an attempt returned over-long replacements."""

    return (
        "ATTENTION: Une précédente réponse a été rejetée car certaines corrections "
        f"dépassaient la limite de {max_words} mots.\n"
        "RAPPEL IMPÉRATIF: Chaque correction doit faire STRICTEMENT entre 3 et 6 mots. "
        "C'est une contrainte technique bloquante."
    )


def build_verification_system_prompt() -> str:
    return _VERIFICATION_PROMPT


__all__ = [
    "build_correction_messages",
    "build_correction_system_prompt",
    "build_verification_system_prompt",
    "correction_few_shot",
    "long_correction_feedback",
]
