from django.urls import path

from ledger import views_health, views_ledger

urlpatterns = [
    path("ledger/vote/submit.json", views_ledger.vote_submit, name="ledger-vote-submit"),
    path("ledger/vote/receipt.json", views_ledger.vote_receipt, name="ledger-vote-receipt"),
    path("ledger/parties.json", views_ledger.parties, name="ledger-parties"),
    path("ledger/blocks.json", views_ledger.block_list, name="ledger-block-list"),
    path("ledger/blocks/<int:block_number>.json", views_ledger.block_detail, name="ledger-block-detail"),
    path("ledger/verify.json", views_ledger.chain_verify, name="ledger-verify"),
    path("ledger/public/chain.json", views_ledger.public_chain, name="ledger-public-chain"),
    path("ledger/results.json", views_ledger.results, name="ledger-results"),
    path("ledger/admin/reset.json", views_ledger.admin_reset, name="ledger-admin-reset"),
    path("ledger/admin/stats.json", views_ledger.admin_stats, name="ledger-admin-stats"),
    path("healthz", views_health.healthz, name="healthz"),
    path("readyz", views_health.readyz, name="readyz"),
]
