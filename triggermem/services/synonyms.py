"""
Static synonym table used to seed new triggers.
"""

from typing import Dict, List

from ..models.core import normalize_word

SYNONYMS: Dict[str, List[str]] = {
    'femme': ['épouse', 'conjointe', 'compagne'],
    'mari': ['époux', 'conjoint', 'compagnon'],
    'travail': ['boulot', 'job', 'emploi', 'profession', 'métier'],
    'enfant': ['fils', 'fille', 'gamin', 'gosse', 'kid'],
    'maison': ['domicile', 'appartement', 'appart', 'logement', 'chez moi'],
    'voiture': ['auto', 'véhicule', 'bagnole', 'caisse'],
    'argent': ['fric', 'thune', 'pognon', 'sous', 'finances'],
    'manger': ['bouffer', 'dîner', 'déjeuner', 'repas'],
    'aimer': ['adorer', 'kiffer', 'apprécier', 'affectionner'],
    'détester': ['haïr', 'ne pas supporter', 'avoir horreur'],
    'content': ['heureux', 'joyeux', 'ravi', 'satisfait'],
    'triste': ['malheureux', 'déprimé', 'abattu', 'morose'],
    'fatigué': ['épuisé', 'crevé', 'lessivé', 'exténué'],
    'stressé': ['anxieux', 'angoissé', 'tendu', 'nerveux'],
}


def expand(word: str, table: Dict[str, List[str]] = SYNONYMS) -> List[str]:
    """Return every word related to ``word`` in either direction.

    Direct synonyms come first, then for each entry listing ``word`` as a
    synonym, that entry's key and its other synonyms. The result is
    deduplicated and never contains ``word`` itself.
    """
    key = normalize_word(word)
    if not key:
        return []

    related: List[str] = list(table.get(key, []))
    for entry, synonyms in table.items():
        if key in synonyms:
            related.append(entry)
            related.extend(synonyms)

    return [w for w in dict.fromkeys(related) if w != key]
