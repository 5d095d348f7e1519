"""State -> district -> taluka -> place reference table.

Static, read-only data; forms cascade through it with ``LocationSelection``.
"""
from typing import Dict, List, Optional

INDIA_LOCATIONS: List[Dict] = [
    {
        "state": "Maharashtra",
        "districts": [
            {"name": "Pune", "talukas": [
                {"name": "pune", "places": ["Pune", "Baramati", "Lonavala"]},
            ]},
            {"name": "Mumbai Suburban", "talukas": [
                {"name": "mumbai", "places": ["Andheri", "Bandra", "Borivali"]},
                {"name": "old mumbai", "places": ["Andheri", "Bandra", "Borivali", "Goregaav"]},
            ]},
        ],
    },
    {
        "state": "Gujarat",
        "districts": [
            {"name": "Patan", "talukas": [
                {"name": "Patan", "places": ["Patan", "Sidhpur", "Radhanpur", "Sami", "Harij", "Chanasma"]},
            ]},
            {"name": "Mehsana", "talukas": [
                {"name": "Mehsana", "places": ["Ajabpura", "Akhaj", "Aloda", "Ambaliyasan", "Ambasan", "Badalpura",
                                               "Baliyasan", "Balol", "Balvantpura", "Bamosana", "kherva"]},
                {"name": "Kadi", "places": ["Achrasan", "Adaraj", "Adundara", "Agol", "Bharkhali", "Budhpura",
                                            "Chandiyala", "Dandi", "Dediyasan (Kadi)", "Dholka"]},
                {"name": "Visnagar", "places": ["Bhandu", "Bhathigam", "Bhildadar", "Dhorkin", "Gojariya", "Gothada",
                                                "Kherol", "Kudasan", "Malpur", "Morva Hadaf"]},
                {"name": "Vijapur", "places": ["Dholasan", "Juna Sedhavi", "Langhnaj", "Mitha", "Modipur", "Motidau",
                                               "Palaj", "Rampura (Katosan)", "Sakharpurda", "Tavadiya"]},
                {"name": "Vadnagar", "places": ["Akhaj", "Dixitpura", "Hatnoor", "Katosan", "Kherol", "Manpura",
                                                "Rampura (Vadnagar)", "Rupal", "Sanganpur", "Ucharpi"]},
                {"name": "Kheralu", "places": ["Delol", "Dhinoj", "Gadu", "Gorasana", "Khara", "Kherva", "Rampar",
                                               "Rasikpura", "Satlasana", "Unad"]},
                {"name": "Becharaji", "places": ["Jagudan", "Mandali", "Mandal", "Rajpura", "Sami", "Vadtal",
                                                 "Varnama", "Vejalpur", "Vinchhiya", "Zundal"]},
                {"name": "Satlasana", "places": ["Satlasana", "Vadagam", "Undel", "Gujapura", "Katosan", "Saldi",
                                                 "Tejpura", "Taleti", "Virampura", "Virasan"]},
                {"name": "Jotana", "places": ["Jotana", "Amoda", "Chandial", "Dhanali", "Kanpura", "Martoli",
                                              "Manknaj", "Modipur", "Mudarda", "Rampura (Katosan)"]},
                {"name": "Unjha", "places": ["Unjha", "Dabhi", "Kansari", "Mahesana Rural", "Rantej", "Ranipura",
                                             "Sakharpurda", "Sobhasan", "Virsoda", "Virta"]},
            ]},
            {"name": "Ahmedabad", "talukas": [
                {"name": "Ahmedabad", "places": ["Odhav", "Bhat", "Visalpur", "Dholka", "Sanand"]},
            ]},
            {"name": "Surat", "talukas": [
                {"name": "Surat", "places": ["Bardoli", "Vyara", "Mandvi", "Olpad", "Kamrej"]},
            ]},
            {"name": "Rajkot", "talukas": [
                {"name": "Rajkot", "places": ["Jetpur", "Upleta", "Paddhari", "Lodhika", "Kotda Sangani"]},
            ]},
            {"name": "Bhavnagar", "talukas": [
                {"name": "Bhavnagar", "places": ["Gariadhar", "Talaja", "Umrala", "Mahuva", "Palitana"]},
            ]},
            {"name": "Gandhinagar", "talukas": [
                {"name": "Gandhinagar", "places": ["Dehgam", "Mansa", "Kalol", "Adalaj", "Pethapur"]},
            ]},
            {"name": "Navsari", "talukas": [
                {"name": "Navsari", "places": ["Vansda", "Chikhli", "Jalalpore", "Gandevi", "Khergam"]},
            ]},
            {"name": "Bharuch", "talukas": [
                {"name": "Bharuch", "places": ["Ankleshwar", "Amod", "Valia", "Hansot", "Jambusar"]},
            ]},
            {"name": "Anand", "talukas": [
                {"name": "Anand", "places": ["Borsad", "Umreth", "Sojitra", "Petlad", "Tarapur"]},
            ]},
            {"name": "Vadodara", "talukas": [
                {"name": "Vadodara", "places": ["Padra", "Karjan", "Waghodia", "Savli", "Dabhoi"]},
            ]},
            {"name": "Narmada", "talukas": [
                {"name": "Narmada", "places": ["Rajpipla", "Dediapada", "Tilakwada", "Garudeshwar", "Nandod"]},
            ]},
        ],
    },
    {
        "state": "Uttar Pradesh",
        "districts": [
            {"name": "Lucknow", "talukas": [
                {"name": "Default", "places": ["Lucknow", "Malihabad", "Mohanlalganj"]},
            ]},
            {"name": "Varanasi", "talukas": [
                {"name": "Default", "places": ["Varanasi", "Ramnagar", "Sarnath"]},
            ]},
        ],
    },
]


def _find(items: List[Dict], key: str, value: Optional[str]) -> Optional[Dict]:
    for item in items:
        if item[key] == value:
            return item
    return None


def get_states() -> List[str]:
    return [s["state"] for s in INDIA_LOCATIONS]


def get_districts(state: Optional[str]) -> List[str]:
    s = _find(INDIA_LOCATIONS, "state", state)
    return [d["name"] for d in s["districts"]] if s else []


def get_talukas(state: Optional[str], district: Optional[str]) -> List[str]:
    s = _find(INDIA_LOCATIONS, "state", state)
    d = _find(s["districts"], "name", district) if s else None
    return [t["name"] for t in d["talukas"]] if d else []


def get_places(state: Optional[str], district: Optional[str], taluka: Optional[str]) -> List[str]:
    s = _find(INDIA_LOCATIONS, "state", state)
    d = _find(s["districts"], "name", district) if s else None
    t = _find(d["talukas"], "name", taluka) if d else None
    return list(t["places"]) if t else []


def get_cities(state: Optional[str], district: Optional[str]) -> List[str]:
    """Every place in the district across its talukas, first occurrence wins."""
    seen = []
    for taluka in get_talukas(state, district):
        for place in get_places(state, district, taluka):
            if place not in seen:
                seen.append(place)
    return seen


def _with_value(options: List[str], value: str) -> List[str]:
    if value and value not in options:
        return [value] + options
    return options


class LocationSelection:
    """Cascading state/district/taluka/place picker.

    Changing a level clears every level below it. ``seed=True`` keeps values
    that are not in the table (records saved before the table changed) by
    prepending them to their option list.
    """

    def __init__(self, state: str = "", district: str = "", taluka: str = "", place: str = "",
                 seed: bool = False):
        self.state = state or ""
        self.district = district or ""
        self.taluka = taluka or ""
        self.place = place or ""
        self.seed = seed

    @classmethod
    def from_record(cls, record: Dict, place_key: str = "city") -> "LocationSelection":
        return cls(record.get("state") or "", record.get("district") or "",
                   record.get("taluka") or "", record.get(place_key) or "", seed=True)

    def choose_state(self, state: str):
        self.state = state or ""
        self.district = self.taluka = self.place = ""
        self.seed = False

    def choose_district(self, district: str):
        self.district = district or ""
        self.taluka = self.place = ""
        self.seed = False

    def choose_taluka(self, taluka: str):
        self.taluka = taluka or ""
        self.place = ""
        self.seed = False

    def choose_place(self, place: str):
        self.place = place or ""

    @classmethod
    def from_form(cls, form, place_key: str = "city") -> "LocationSelection":
        """Rebuild the picker from a submitted form.

        Forms re-submit with ``cascade`` naming the select the user just
        changed; everything below that level is cleared.
        """
        sel = cls(form.get("state") or "", form.get("district") or "",
                  form.get("taluka") or "", form.get(place_key) or "", seed=True)
        changed = form.get("cascade")
        if changed == "state":
            sel.choose_state(sel.state)
        elif changed == "district":
            sel.choose_district(sel.district)
        elif changed == "taluka":
            sel.choose_taluka(sel.taluka)
        return sel

    @property
    def states(self) -> List[str]:
        options = get_states()
        return _with_value(options, self.state) if self.seed else options

    @property
    def districts(self) -> List[str]:
        options = get_districts(self.state)
        return _with_value(options, self.district) if self.seed else options

    @property
    def talukas(self) -> List[str]:
        options = get_talukas(self.state, self.district)
        return _with_value(options, self.taluka) if self.seed else options

    @property
    def places(self) -> List[str]:
        if self.taluka:
            options = get_places(self.state, self.district, self.taluka)
        else:
            options = get_cities(self.state, self.district)
        return _with_value(options, self.place) if self.seed else options

    def as_dict(self, place_key: str = "city") -> Dict[str, str]:
        return {"state": self.state, "district": self.district, "taluka": self.taluka, place_key: self.place}
