from linkage.similarity import similarity, teacher_similar


def test_identical_after_canonicalization():
    assert similarity("Smith John", "smith, john") == 100


def test_levenshtein_percentage():
    # kitten -> sitting: 3 правки на 7 символов
    assert similarity("kitten", "sitting") == 57
    assert similarity("smyth jon", "smith john") == 78


def test_empty_is_zero_not_hundred():
    assert similarity("", "") == 0
    assert similarity("!!!", "123") == 0
    assert similarity("", "ana") == 0


def test_never_negative():
    assert similarity("a", "zzzzzzzz") == 0


def test_symmetry():
    pairs = [("kitten", "sitting"), ("Jon Smyth", "Smith John"), ("a", ""), ("Lee Sam", "Sam Lee")]
    for a, b in pairs:
        assert similarity(a, b) == similarity(b, a)


def test_teacher_containment_and_similarity():
    assert teacher_similar("Ms. Garcia", "Garcia")
    assert teacher_similar("GARCIA, MARIA", "Garcia Maria")
    assert teacher_similar("Johnsen", "Johnson")
    assert not teacher_similar("Garcia", "Johnson")
    assert not teacher_similar("", "Garcia")
