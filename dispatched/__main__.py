from dispatched.cli import main

main()
