from seed import DEMO_PRODUCTS, seed_demo_data


def test_seed_empty_database(mongo_db):
    assert seed_demo_data(mongo_db) is True
    assert mongo_db["product"].count_documents({}) == len(DEMO_PRODUCTS)
    assert mongo_db["category"].count_documents({}) == 4


def test_seed_skips_populated_database(mongo_db):
    mongo_db["product"].insert_one({"_id": "100", "title": "Existing", "price": 1, "category": "misc"})
    assert seed_demo_data(mongo_db) is False
    assert mongo_db["product"].count_documents({}) == 1
