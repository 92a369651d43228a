"""Query parameters stripped during canonicalization.

Matching is exact and case-sensitive.
"""

TRACKING_PARAMS: frozenset[str] = frozenset(
    {
        # UTM campaign tracking
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "utm_id",
        "utm_creative",
        # Ad / social click identifiers
        "fbclid",  # Facebook
        "gclid",  # Google Ads
        "gclsrc",
        "msclkid",  # Microsoft Ads
        "twclid",  # Twitter
        "li_fat_id",  # LinkedIn
        "dclid",  # DoubleClick
        "yclid",  # Yandex
        "ttclid",  # TikTok
        "sccid",  # Snapchat
        "igshid",  # Instagram
        # Email platforms: subscriber / campaign identifiers
        "mc_cid",  # Mailchimp
        "mc_eid",
        "ck_subscriber_id",  # ConvertKit
        "email_subscriber_id",
        "subscriber_id",
        "user_id",
        "uid",
        "_bta_tid",  # Bronto
        "_bta_c",
        "trk_contact",  # HubSpot
        "trk_msg",
        "trk_module",
        "trk_sid",
        "email",
        "subscriber",
        "hash",
        "token",
        "sid",
        "eid",
        "mid",
        "publication_id",
        "isFreemail",
        # Generic analytics
        "_ga",
        "_gl",
        "_hsenc",  # HubSpot
        "_hsmi",
        "ref",
        "referer",
        "referrer",
        "source",
        "src",
        "trk",
        "srid",
        "_openstat",  # Yandex.Metrica
        "s_kwcid",  # Adobe Analytics
        "s_cid",
        "ef_id",
        "spm",  # Alibaba
        "scm",
        "smid",  # NYTimes share
        "smtyp",
        # Marketing / attribution
        "mkt_tok",  # Marketo
        "ncid",
        "sr_share",
        "share_bandit_exp",
        "share_bandit_var",
        "share_source",
        "shareuid",
        "affiliate",
        "affiliate_id",
        "partner",
        "partner_id",
        "campaign",
        "campaign_id",
        "zanpid",  # Zanox
        "kclickid",
        "__s",  # Drip
        "_ke",  # Klaviyo
        "vgo_ee",
        "vero_id",
        "nr_email_referer",
    }
)
