"""Tests for the Olist CSV loader."""

import pandas as pd
import pytest

from datasources import OlistCsvLoader


@pytest.fixture
def olist_dir(tmp_path):
    """Minimal Olist export with one order, written the way Kaggle ships it."""
    frames = {
        "customers": pd.DataFrame(
            {
                "customer_id": ["c1"],
                "customer_unique_id": ["u1"],
                "customer_zip_code_prefix": [1151],
                "customer_city": ["sao paulo"],
                "customer_state": ["SP"],
            }
        ),
        "orders": pd.DataFrame(
            {
                "order_id": ["o1"],
                "customer_id": ["c1"],
                "order_status": ["delivered"],
                "order_purchase_timestamp": ["2017-10-02 10:56:33"],
                "order_approved_at": ["2017-10-02 11:07:15"],
                "order_delivered_carrier_date": ["2017-10-04 19:55:00"],
                "order_delivered_customer_date": ["2017-10-10 21:25:13"],
                "order_estimated_delivery_date": ["2017-10-18 00:00:00"],
            }
        ),
        "products": pd.DataFrame(
            {
                "product_id": ["p1", "p2"],
                "product_category_name": ["utilidades_domesticas", "sem_traducao"],
                "product_weight_g": [500, 300],
            }
        ),
        "sellers": pd.DataFrame(
            {
                "seller_id": ["s1"],
                "seller_zip_code_prefix": [9350],
                "seller_city": ["maua"],
                "seller_state": ["SP"],
            }
        ),
        "order_items": pd.DataFrame(
            {
                "order_id": ["o1"],
                "order_item_id": [1],
                "product_id": ["p1"],
                "seller_id": ["s1"],
                "shipping_limit_date": ["2017-10-06 11:07:15"],
                "price": [29.99],
                "freight_value": [8.72],
            }
        ),
        "payments": pd.DataFrame(
            {
                "order_id": ["o1"],
                "payment_sequential": [1],
                "payment_type": ["credit_card"],
                "payment_installments": [1],
                "payment_value": [38.71],
            }
        ),
        "reviews": pd.DataFrame(
            {
                "review_id": ["r1"],
                "order_id": ["o1"],
                "review_score": [4],
                "review_comment_title": [None],
                "review_creation_date": ["2017-10-11 00:00:00"],
                "review_answer_timestamp": ["2017-10-12 03:43:48"],
            }
        ),
        "geolocation": pd.DataFrame(
            {
                "geolocation_zip_code_prefix": [1151, 1151],
                "geolocation_lat": [-23.545, -23.546],
                "geolocation_lng": [-46.639, -46.640],
                "geolocation_city": ["sao paulo", "sao paulo"],
                "geolocation_state": ["SP", "SP"],
            }
        ),
    }
    for entity, frame in frames.items():
        frame.to_csv(tmp_path / OlistCsvLoader.FILE_NAMES[entity], index=False)

    pd.DataFrame(
        {
            "product_category_name": ["utilidades_domesticas"],
            "product_category_name_english": ["housewares"],
        }
    ).to_csv(tmp_path / OlistCsvLoader.TRANSLATION_FILE, index=False)
    return tmp_path


class TestOlistCsvLoader:
    def test_load_all(self, olist_dir):
        snapshot = OlistCsvLoader(olist_dir).load_all()

        assert snapshot.row_counts()["geolocation"] == 2
        assert snapshot.customers["customer_zip_code_prefix"].iloc[0] == "01151"
        assert snapshot.sellers["seller_zip_code_prefix"].iloc[0] == "09350"
        assert snapshot.orders["order_purchase_timestamp"].iloc[0] == pd.Timestamp(
            "2017-10-02 10:56:33"
        )
        assert snapshot.order_items["price"].iloc[0] == 29.99

    def test_categories_translated_with_fallback(self, olist_dir):
        snapshot = OlistCsvLoader(olist_dir).load_all()

        assert snapshot.products["product_category_name"].tolist() == [
            "housewares",
            "sem_traducao",
        ]

    def test_translation_can_be_disabled(self, olist_dir):
        snapshot = OlistCsvLoader(olist_dir, translate_categories=False).load_all()

        assert snapshot.products["product_category_name"].iloc[0] == "utilidades_domesticas"

    def test_missing_file_is_reported(self, olist_dir):
        (olist_dir / OlistCsvLoader.FILE_NAMES["reviews"]).unlink()

        with pytest.raises(FileNotFoundError, match="olist_order_reviews_dataset.csv"):
            OlistCsvLoader(olist_dir).load_all()
