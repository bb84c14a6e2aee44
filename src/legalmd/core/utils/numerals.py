"""Roman and alphabetic label generation for header numbering"""


_ROMAN = [
    (1000, "M"), (900, "CM"), (500, "D"), (400, "CD"),
    (100, "C"), (90, "XC"), (50, "L"), (40, "XL"),
    (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
]


def roman(num: int, lowercase: bool = False) -> str:
    """Return the roman numeral for num; empty string for num <= 0."""
    out = []
    for value, numeral in _ROMAN:
        while num >= value:
            out.append(numeral)
            num -= value
    text = "".join(out)
    return text.lower() if lowercase else text


def alpha(num: int, uppercase: bool = False) -> str:
    """Return a spreadsheet-style letter label: 1 -> a, 26 -> z, 27 -> aa."""
    label = ""
    while num > 0:
        num, rem = divmod(num - 1, 26)
        label = chr(97 + rem) + label
    return label.upper() if uppercase else label
